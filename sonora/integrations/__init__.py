"""Clients and contracts for the services the import pipeline talks to."""
