from fastapi import APIRouter, Request

from ..db import Database

router = APIRouter()

APP_NAME = "truthordare-api"
APP_VERSION = "1.0.0"


def get_db(request: Request) -> Database:
    return request.app.state.db


@router.get("/health")
def health():
    return {"status": "ok"}

@router.get("/version")
def version():
    return {"app": APP_NAME, "version": APP_VERSION}
