# database.py
from motor.motor_asyncio import AsyncIOMotorClient
import os
from dotenv import load_dotenv

load_dotenv()

MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "exam_platform_db")
JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "720"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]
# Countdown period in seconds; 0 turns the autonomous exam timer off.
EXAM_TICK_SECONDS = float(os.getenv("EXAM_TICK_SECONDS", "1"))

client = AsyncIOMotorClient(MONGODB_URI)
db = client[MONGODB_DB]

async def init_db():
    await db.users.create_index("id", unique=True)
    await db.users.create_index("username", unique=True)
    await db.users.create_index("email", unique=True)
    await db.exam_sets.create_index("id", unique=True)
    await db.questions.create_index("id", unique=True)
    await db.questions.create_index([("examSetId", 1), ("order", 1)])
    await db.exam_attempts.create_index("id", unique=True)
    await db.exam_attempts.create_index([("studentId", 1), ("endTime", -1)])
    await db.exam_attempts.create_index("examSetId")
