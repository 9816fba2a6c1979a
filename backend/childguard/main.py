import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from childguard.api.alerts import router as alerts_router
from childguard.api.geofences import router as geofences_router
from childguard.api.locations import router as locations_router
from childguard.api.risk import router as risk_router
from childguard.api.simulate import router as simulate_router
from childguard.api.sos import router as sos_router
from childguard.api.ws import router as ws_router
from childguard.core.config import settings
from childguard.core.errors import register_error_handlers
from childguard.core.logging import setup_logging
from childguard.db import Base, engine
from childguard.models.alert import Alert  # noqa: F401  (import ensures table is registered)
from childguard.models.device import Device  # noqa: F401
from childguard.models.geofence import Geofence  # noqa: F401
from childguard.models.location import Location  # noqa: F401
from childguard.models.risk_assessment import RiskAssessment  # noqa: F401
from childguard.models.sos_event import SosEvent  # noqa: F401
from childguard.models.subject import Guardian, Subject  # noqa: F401
from childguard.services.classifier import build_classifier
from childguard.services.fanout import ChannelHub

logger = logging.getLogger("childguard.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level, settings.log_json)

    # Create DB tables on startup
    Base.metadata.create_all(bind=engine)

    # Fails fast on a bad classifier configuration
    app.state.classifier = build_classifier(settings)

    hub = ChannelHub()
    hub.bind(asyncio.get_running_loop())
    app.state.fanout = hub
    logger.info("childguard started (classifier=%s)", settings.classifier_mode)
    try:
        yield
    finally:
        hub.close()


app = FastAPI(title="childguard", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(simulate_router)
app.include_router(alerts_router)
app.include_router(sos_router)
app.include_router(geofences_router)
app.include_router(locations_router)
app.include_router(risk_router)
app.include_router(ws_router)


@app.get("/")
def root():
    return {"message": "childguard backend is running"}


@app.get("/health")
def health():
    return {"status": "ok", "service": "childguard"}
