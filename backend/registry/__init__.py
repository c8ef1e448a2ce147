"""Application package for the campus registry backend.

This package exposes the service, repository and model modules used by
the FastAPI application. Students and departments are managed through a
layered controller/service/repository/model stack; individual modules
contain the concrete implementations and documentation.
"""
