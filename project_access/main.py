# ---------------------------------------------------------
# project_access/main.py
# Project access service - who may view, edit and manage a project
#
# Run: uvicorn project_access.main:app --reload (from repo root)
#
# - FastAPI + SQLite (dev) / PostgreSQL (prod)
# - /api/projects/{id}/members          : member list (viewer+)
# - /api/projects/{id}/members/{user}   : PUT grant, DELETE revoke
# - /api/projects/{id}/candidates       : organization members to add (manager+)
# - /api/projects/{id}/usage            : collaborator seats vs. plan limit
# - /api/projects/{id}/role             : caller's role + capability flags
# - /api/projects/shared, /accessible   : project listings for the caller
# ---------------------------------------------------------

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from project_access.config import CORS_ORIGINS, ENV
from project_access.migrate import run_migrations
from project_access.routes_access import router as access_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    run_migrations()
    yield


app = FastAPI(title="Project Access Service", version="0.1", lifespan=lifespan)

# CORS configuration from config module
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(access_router)


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "env": ENV}
