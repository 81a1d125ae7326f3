"""
OV-Ballot - Speech Tournament Ballot System

Records judged speech ballots for club tournaments and distributes them
back to competitors through emailed magic links.

Main components:
- db: SQLAlchemy models and session management
- services: ballot intake, rankings, magic links, tournament admin, email
- web: FastAPI application (public judge API + admin API)
"""

__version__ = "1.0.0"
