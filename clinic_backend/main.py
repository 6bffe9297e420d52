import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from clinic_backend.core import config
from clinic_backend.database import ensure_booking_constraints, init_db
from clinic_backend.errors import register_exception_handlers
from clinic_backend.routes import auth_routes, booking_routes, slot_routes

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

config.validate_runtime_config()

app = FastAPI(title='Clinic Appointment API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

register_exception_handlers(app)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        init_db()
        ensure_booking_constraints()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Clinic Appointment API Running'}


app.include_router(auth_routes.router, prefix='/api')
app.include_router(slot_routes.router, prefix='/api')
app.include_router(booking_routes.router, prefix='/api')
