"""
notifications — Emergency notification fan-out.

Sub-modules:
    channels/    — Push delivery transports (FCM, simulation)
    dispatcher   — Trigger entry points and the never-fail round boundary
    resolver     — Subscriber and senior-name lookup
    payloads     — Raised / cancelled message templates
    fanout       — Concurrent per-token delivery, join-all
    store        — Account store port (Firestore, in-memory)
    models       — Data structures shared across the system
"""
