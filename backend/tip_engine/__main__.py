import uvicorn

from .main import app
from .settings import settings


def run():
    uvicorn.run(app, host=settings.host, port=settings.port,
                log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
