import os

import uvicorn

from livenotes.main import create_app

app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        app,
        host=os.environ.get("LIVENOTES_HOST", "127.0.0.1"),
        port=int(os.environ.get("LIVENOTES_PORT", "8765")),
        log_config=None,
    )
