# dependencies.py
from database import EXAM_TICK_SECONDS, db
from services.attempt_engine import ExamAttemptEngine
from services.catalog import ExamCatalogService
from services.gateway import MongoGateway
from services.sessions import AttemptRegistry

gateway = MongoGateway(db)
catalog = ExamCatalogService(gateway)
engine = ExamAttemptEngine(catalog, gateway, tick_interval=EXAM_TICK_SECONDS)
registry = AttemptRegistry()

def get_gateway():
    return gateway

def get_catalog():
    return catalog

def get_engine():
    return engine

def get_registry():
    return registry
