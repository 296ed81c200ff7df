# Serverless entry point for the LonyiChat backend.
#
# Hosting platforms (Vercel, Cloud Run) import ``app`` from this module and
# serve it as an ASGI application.

from lonyichat.app import create_app

app = create_app()
