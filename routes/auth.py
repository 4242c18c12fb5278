# routes/auth.py
from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from datetime import datetime, timedelta
import bcrypt
import logging
import uuid

from database import JWT_SECRET, JWT_EXPIRE_MINUTES
from dependencies import get_gateway
from models.user import LoginRequest, Role, StoredUser, TokenResponse, User, UserCreate

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

router = APIRouter(prefix="/api/auth", tags=["auth"])
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login/")

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False

def create_access_token(user: User) -> str:
    expires = datetime.utcnow() + timedelta(minutes=JWT_EXPIRE_MINUTES)
    return jwt.encode({"id": user.id, "role": user.role.value, "exp": expires}, JWT_SECRET, algorithm=ALGORITHM)

def public_user(user: StoredUser) -> User:
    return User(**user.model_dump(include=set(User.model_fields)))

async def get_current_user(token: str = Depends(oauth2_scheme), gateway=Depends(get_gateway)) -> User:
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.error(f"JWTError: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token")
    user_id = payload.get("id")
    if not user_id or not payload.get("role"):
        logger.error("Invalid token: Missing user_id or role")
        raise HTTPException(status_code=401, detail="Invalid token")
    user = await gateway.fetch_user_by_id(user_id)
    if not user:
        logger.error(f"User not found for id: {user_id}")
        raise HTTPException(status_code=401, detail="User not found")
    return public_user(user)

def require_role(*roles: Role):
    """Dependency admitting only users holding one of `roles`."""
    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            allowed = " or ".join(r.value for r in roles)
            raise HTTPException(403, f"Only {allowed} users can do this")
        return current_user
    return checker

@router.post("/register/", response_model=TokenResponse)
async def register(request: UserCreate, gateway=Depends(get_gateway)):
    if await gateway.user_exists(request.username, request.email):
        raise HTTPException(status_code=400, detail="Username or email already registered")
    user = StoredUser(
        id=str(uuid.uuid4()),
        username=request.username,
        email=request.email,
        name=request.name,
        role=request.role,
        passwordHash=hash_password(request.password),
    )
    await gateway.create_user(user)
    logger.info(f"Registered {user.role.value} {user.username} ({user.id})")
    account = public_user(user)
    return TokenResponse(access_token=create_access_token(account), user=account)

@router.post("/login/", response_model=TokenResponse)
async def login(request: LoginRequest, gateway=Depends(get_gateway)):
    logger.info(f"Login attempt for username: {request.username}")
    user = await gateway.fetch_user_by_username(request.username)
    if not user or not verify_password(request.password, user.passwordHash):
        logger.warning(f"Invalid credentials for username: {request.username}")
        raise HTTPException(status_code=401, detail="Invalid credentials")
    await gateway.touch_login(user.id, datetime.utcnow())
    account = public_user(user)
    return TokenResponse(access_token=create_access_token(account), user=account)

@router.get("/current-user", response_model=User)
async def get_current_user_endpoint(current_user: User = Depends(get_current_user)):
    return current_user
