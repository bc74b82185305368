"""FastAPI application entrypoint.

Run with `uvicorn web_server:app`.
"""
from server.main import create_app

app = create_app()


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
