import traceback

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

import models  # noqa: F401  registers every table on Base.metadata
from database import Base, engine
from routes import (
    profiles,
    groups,
    trips,
    trip_members,
    trip_votes,
    jobs,
)
from utils.logger import setup_api_logger

Base.metadata.create_all(bind=engine)

app = FastAPI(title="Group Trip API (Groups, Trips, Availability, Votes, Notifications)")

# setup file logger for API failures
api_logger = setup_api_logger()


@app.exception_handler(Exception)
async def generic_exception_handler(request, exc):
    # log request info and stacktrace
    try:
        body = await request.body()
    except Exception:
        body = b""
    tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    api_logger.error("Unhandled exception on %s %s | body=%s | error=%s\n%s",
                     request.method, request.url.path, body.decode('utf-8', errors='replace'), str(exc), tb)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    try:
        body = await request.body()
    except Exception:
        body = b""
    api_logger.warning("HTTPException on %s %s | status=%s | body=%s | detail=%s",
                       request.method, request.url.path, exc.status_code,
                       body.decode('utf-8', errors='replace'), str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)


app.include_router(profiles.router)
app.include_router(groups.router)
app.include_router(trips.router)
app.include_router(trip_members.router)
app.include_router(trip_votes.router)
app.include_router(jobs.router)
