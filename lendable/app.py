#!/usr/bin/env python3

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from lendable.core import db
from lendable.routes import api
from lendable.configs import OPTIONS, CORS_ORIGINS, LOG_LEVEL
from lendable import __version__ as VERSION

logging.basicConfig(level=LOG_LEVEL.upper())


@asynccontextmanager
async def lifespan(app: FastAPI):
    db.init()
    yield


app = FastAPI(
    title="Lendable API",
    description="Lendable: multi-tenant lending, approval and penalty engine",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api.router, prefix="/v1/api")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("lendable.app:app", **OPTIONS)
