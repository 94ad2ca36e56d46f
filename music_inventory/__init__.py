"""
Music Inventory - catalog of songs, authors and categories.

A single FastAPI service that renders HTML views with Jinja2 templates and
stores its records in an embedded SQLite database.
"""
