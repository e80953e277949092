from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from blogger.database import get_db
from blogger.schemas import UserLogin, UserRegister
from blogger.services import user_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=201)
async def register(data: UserRegister, db: AsyncSession = Depends(get_db)):
    result = await user_service.register(db, data)
    return {"message": "User registered successfully", **result}


@router.post("/login")
async def login(data: UserLogin, db: AsyncSession = Depends(get_db)):
    result = await user_service.login(db, data)
    return {"message": "Login successful", **result}
