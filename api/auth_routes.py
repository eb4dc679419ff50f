"""FastAPI routes for account registration, login and token verification."""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse

from api.schemas import LoginReq, RegisterReq
from auth import login, register, verify

router = APIRouter(prefix="/auth")


@router.post("/register", status_code=201)
def register_user(payload: RegisterReq) -> JSONResponse:
    result = register(payload.email, payload.password, payload.name)
    body = {
        "success": True,
        "message": "User registered successfully",
        "user": result.user.model_dump(),
        "token": result.token,
    }
    return JSONResponse(status_code=201, content=body)


@router.post("/login")
def login_user(payload: LoginReq) -> Dict[str, Any]:
    result = login(payload.email, payload.password)
    return {
        "success": True,
        "message": "Login successful",
        "user": result.user.model_dump(),
        "token": result.token,
    }


@router.get("/verify")
def verify_token(authorization: Optional[str] = Header(None)) -> Dict[str, Any]:
    user = verify(authorization)
    return {"success": True, "user": user.model_dump()}
