"""
main.py

Development server entry point. Production deployments serve
``cloudvault.main:app`` with a WSGI server.
"""

import os

from .app_factory import create_app

app = create_app()


def run() -> None:
    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", 8000))
    debug = os.getenv("FLASK_DEBUG", "false").lower() == "true"
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    run()
