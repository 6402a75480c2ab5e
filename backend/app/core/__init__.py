# app/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- bootstrap: Default admin creation on first startup
- db: Database configuration and connection management
- errors: Service error taxonomy and the persistence guard
- identity: Credential verification into a CallerIdentity
- pubsub: Per-user WebSocket connection registry
- security: Password hashing and JWT issuing/decoding
"""
