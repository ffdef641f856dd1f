"""core/ -- Configuration and the shared error taxonomy. Imports nothing from the app."""
