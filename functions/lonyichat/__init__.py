"""
LonyiChat backend package.

A FastAPI application over a document store (Firestore in production,
SQLAlchemy or in-memory elsewhere) serving profiles, posts, churches,
media and static content for the LonyiChat app.
"""
