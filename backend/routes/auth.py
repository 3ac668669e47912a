# backend/routes/auth.py
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from utils.hashing import get_password_hash, verify_password
from utils.tokenJWT import create_access_token, get_current_user
from utils.audit import write_log
from models import users as models
from schemas import user as schemas
from database import get_db
from sqlalchemy import func

router = APIRouter(tags=["Auth"])

# Register a new user
@router.post("/register", response_model=schemas.UserResponse)
def register(user: schemas.UserCreate, db: Session = Depends(get_db), request: Request = None):
    # Normalize username input
    normalized_username = user.username.strip().lower()

    # Check for existing user
    db_user = db.query(models.User).filter(func.lower(models.User.username) == normalized_username).first()
    if db_user:
        if request:
            write_log(
                db,
                user_id=None,
                action="REGISTER",
                resource="auth",
                status="FAIL",
                ip=request.client.host,
                meta={"username": user.username, "reason": "Username exists"},
            )
        raise HTTPException(status_code=400, detail="Username already registered")

    if user.badge_number and db.query(models.User).filter(models.User.badge_number == user.badge_number).first():
        raise HTTPException(status_code=400, detail="Badge number already in use")

    # Create new user instance with hashed password; every account starts as a plain user
    new_user = models.User(
        username=normalized_username,
        name=user.name.strip(),
        password_hash=get_password_hash(user.password),
        role="user",
        badge_number=user.badge_number,
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    # Log successful registration event
    if request:
        write_log(
            db,
            user_id=new_user.id,
            action="REGISTER",
            resource="auth",
            status="SUCCESS",
            ip=request.client.host,
            meta={"username": new_user.username},
        )

    return new_user


# Authenticate user and issue JWT token
@router.post("/login", response_model=schemas.Token)
def login(payload: schemas.UserLogin, db: Session = Depends(get_db), request: Request = None):
    username = payload.username.strip().lower()
    db_user = db.query(models.User).filter(func.lower(models.User.username) == username).first()

    # Validate credentials and log failure on error
    if not db_user or not verify_password(payload.password, db_user.password_hash):
        if request:
            write_log(db, user_id=(db_user.id if db_user else None), action="LOGIN", resource="auth",
                      status="FAIL", ip=request.client.host, meta={"username": payload.username})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    # Generate access token
    access_token = create_access_token(data={"sub": db_user.username, "role": db_user.role})

    # Log successful login event
    if request:
        write_log(db, user_id=db_user.id, action="LOGIN", resource="auth",
                  status="SUCCESS", ip=request.client.host, meta={"username": db_user.username})

    return {"access_token": access_token, "token_type": "bearer"}


# Authenticate with a scanned badge, no password
@router.post("/login/badge", response_model=schemas.Token)
def login_with_badge(payload: schemas.BadgeLogin, db: Session = Depends(get_db), request: Request = None):
    badge_number = payload.badge_number.strip()
    db_user = db.query(models.User).filter(models.User.badge_number == badge_number).first() if badge_number else None

    if not db_user:
        if request:
            write_log(db, user_id=None, action="LOGIN_BADGE", resource="auth",
                      status="FAIL", ip=request.client.host, meta={"badge_number": badge_number})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown badge")

    access_token = create_access_token(data={"sub": db_user.username, "role": db_user.role})

    if request:
        write_log(db, user_id=db_user.id, action="LOGIN_BADGE", resource="auth",
                  status="SUCCESS", ip=request.client.host, meta={"username": db_user.username})

    return {"access_token": access_token, "token_type": "bearer"}


# Retrieve current authenticated user details
@router.get("/me", response_model=schemas.UserResponse)
def me(current_user: models.User = Depends(get_current_user)):
    return current_user
