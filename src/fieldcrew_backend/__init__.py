"""
FieldCrew Backend - REST API for field crew scheduling records

This package provides a FastAPI-based web service that stores the records a
field service business works with and announces every change. It covers:

- Clients, plantations, jobs and job types
- Teams, team members and team assignments to jobs
- Change events appended to a per-kind event log stream
- Live push of the same changes to connected WebSocket viewers

Every entity kind is served by the same generic pipeline: persist first, then
fan the change out on background workers so response latency never depends
on the event log or on live subscribers.

Key Components:
    - main: FastAPI application factory and HTTP/WebSocket endpoints
    - entity_service: Per-kind CRUD orchestration and fan-out trigger
    - database: SQLite persistence gateway
    - event_log: Kinesis change event publisher
    - broadcaster: WebSocket subscriber hub
    - fanout: Background dispatch of change events
    - entities: Catalogue of entity kinds and their columns
    - configuration: Config loading from config.yaml, .env and environment

Usage:
    Run the API server with:
        uvicorn fieldcrew_backend.main:app --reload --host 0.0.0.0 --port 5000

    Or use the installed script, which honours HOST, PORT and LOG_LEVEL:
        fieldcrew-backend

Architecture Principles:
    - One generic handler instantiated per entity kind
    - Shared handles are injected, never looked up globally
    - Fan-out is best-effort and never changes the HTTP outcome
    - RESTful API conventions for client integration
"""
