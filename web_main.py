"""
Entry point for the AIPIM HTTP server.

Development (hot-reload):
    uv run python web_main.py

Then:
    curl -s localhost:3000/api/messages -H 'content-type: application/json' \
        -d '{"model": "gpt-4o", "text": "Hello!"}'
"""

import uvicorn

from aipim.config import load_config

if __name__ == "__main__":
    config = load_config()
    uvicorn.run(
        "aipim.web.app:app",
        host=config.server.host,
        port=config.server.port,
        reload=True,
    )
