"""content/ -- Flat-file persistence for the admin-managed site content.

Layer rule: content/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/, web/, or auth/.
"""
