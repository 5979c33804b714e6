# Vercel entrypoint: serves the FastAPI app from the installed package.
from skillex_server.app import app  # noqa: F401
