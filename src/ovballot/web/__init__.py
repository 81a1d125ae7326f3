"""FastAPI application and request handling for OV-Ballot."""
