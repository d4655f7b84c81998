"""
Feature modules live under this package.

Each module owns its models, service (domain rules, raises app.ocl.errors) and
admin blueprint (HTTP), while reusing platform primitives (auth, RBAC, audit,
storage, DB session).
"""
