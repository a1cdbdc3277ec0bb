from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from roombook import auth
from roombook.database import get_db
from roombook.dependencies import get_current_actor
from roombook.models import User
from roombook.rate_limit import AUTH_LIMIT, READ_LIMIT, limiter
from roombook.schemas import Actor, Token, UserCreate, UserRead
from roombook.service import create_app

app = create_app("Users Service", "users")


@app.post("/users/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_LIMIT)
def register_user(request: Request, user_in: UserCreate, db: Session = Depends(get_db)) -> User:
    user = auth.register_user(db, user_in)
    if user is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    return user


@app.post("/users/login", response_model=Token)
@limiter.limit(AUTH_LIMIT)
def login(request: Request, form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)) -> Token:
    user = auth.authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")

    access_token = auth.create_access_token({"sub": user.email})
    return Token(access_token=access_token)


@app.get("/users/me", response_model=Actor)
@limiter.limit(READ_LIMIT)
def read_me(request: Request, actor: Actor = Depends(get_current_actor)) -> Actor:
    return actor
