"""
HTTP surface of the enforcer (FastAPI).

The app itself lives in `server`; `mapper` converts reports to DTOs.
"""
