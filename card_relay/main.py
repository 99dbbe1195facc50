import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles
from pathlib import Path

from card_relay import relay
from card_relay.config import DEBUG, FRONTEND_DIST, PORT
from card_relay.detection import CardDetector
from card_relay.relay_store import RelayStore

logger = logging.getLogger(__name__)


def configure_logging(debug: bool = DEBUG) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )


# -----------------------------
# App factory
# -----------------------------
def create_app(
    store: RelayStore | None = None,
    detector: CardDetector | None = None,
    frontend_dist: str = FRONTEND_DIST,
) -> FastAPI:
    detector = detector or CardDetector()
    store = store or RelayStore(detector)

    app = FastAPI(title="card-relay")
    # one store per application, handed to handlers via app.state
    app.state.store = store
    app.state.detector = detector

    # in production narrow allow_origins to the frontend's domain
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware)

    app.include_router(relay.router)

    # mounted last so /api routes match first
    if frontend_dist:
        dist = Path(frontend_dist).resolve()
        if dist.is_dir():
            logger.info("Serving frontend from %s", dist)
            app.mount("/", StaticFiles(directory=dist, html=True), name="frontend")
        else:
            logger.warning("FRONTEND_DIST %s is not a directory, frontend not served", dist)

    logger.info("Card relay ready (detection configured: %s)", detector.configured)
    return app


configure_logging()
app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("card_relay.main:app", host="0.0.0.0", port=PORT)


if __name__ == "__main__":
    run()
