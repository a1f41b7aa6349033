"""
Directory accounts, credentials and the single active session.

Account records are passive pydantic models. Permission checks and relationship
maintenance live in `hrdir.core.access` and `hrdir.core.directory`.
"""
