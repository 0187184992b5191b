# pipeline_docs/__init__.py
"""Pipeline technical documentation service: access control, documents, search, audit."""
