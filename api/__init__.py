"""api/ -- FastAPI application, transport models, and JSON routes.

Layer rule: api/ may import from auth/, content/ and core/. It does NOT import
from web/ -- only asgi.py joins the two.
"""
