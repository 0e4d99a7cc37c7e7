"""auth/ -- Demo authentication for Audit Desk.

A fixed allow-list of users sharing one demo password, a persisted session
blob, and JWT bearer tokens for the HTTP API.

Layer rule: auth/ may import from core/ and storage/. It does NOT import from
api/, stores/ or ingest/. api/ imports from auth/, not the other way around.
"""
