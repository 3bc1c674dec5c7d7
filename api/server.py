"""
MalleableEngine — FastAPI Server
The HTTP interface: exposes the three scheduling engines and the validator.

  POST /solve              schedule with the dp, lp or ilp engine
  POST /validate_schedule  check an existing schedule against an instance
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from runtime.config import get_settings
from runtime.logging import get_logger, setup_logging
from solver.models import (
    SolveRequest, SolveResponse,
    ValidateRequest, ValidateResponse,
    EngineType,
)
from solver.engine import solve
from solver.validator import validate_schedule

logger = get_logger("malleable.api")

APP_NAME = "MalleableEngine"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = """
Makespan minimization for malleable jobs: each job's duration depends on
the number of identical processors it receives, and jobs are ordered by
precedence pairs.

Engines: `dp` (series/parallel dynamic program), `lp` (window relaxation
with binary search) and `ilp` (time-indexed relaxation, threshold rounding).
Responses carry metrics and Gantt rows.
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("server starting", version=APP_VERSION, log_level=get_settings().log_level)
    yield
    logger.info("server stopped")


app = FastAPI(
    title=APP_NAME,
    version=APP_VERSION,
    description=APP_DESCRIPTION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", operation_id="root", summary="Engines and endpoints")
async def root():
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "engines": [e.value for e in EngineType],
        "tools": [
            {"name": "solve", "endpoint": "/solve"},
            {"name": "validate_schedule", "endpoint": "/validate_schedule"},
        ],
    }


@app.get("/health", operation_id="health_check", summary="Health check")
async def health():
    return {"status": "healthy", "version": APP_VERSION}


@app.post(
    "/solve",
    response_model=SolveResponse,
    operation_id="solve",
    summary="Schedule malleable jobs",
    description="""
Input: jobs (one duration per processor count 1..m), precedence pairs,
processor count and engine. Output: allotment and start per job, metrics
and Gantt rows. Invalid instances come back with status `invalid`.

```json
{
  "jobs": [
    {"job_id": 1, "processing_times": [6, 4]},
    {"job_id": 2, "processing_times": [8, 5]}
  ],
  "constraints": [{"before": 1, "after": 2}],
  "processor_count": 2,
  "engine": "lp"
}
```
""",
    tags=["Scheduling"],
)
def solve_endpoint(request: SolveRequest) -> SolveResponse:
    """Sync handler: the LP backend blocks, so FastAPI runs it in the threadpool."""
    return solve(request)


@app.post(
    "/validate_schedule",
    response_model=ValidateResponse,
    operation_id="validate_schedule",
    summary="Validate a schedule against an instance",
    tags=["Validation"],
)
async def validate_schedule_endpoint(request: ValidateRequest) -> ValidateResponse:
    """Reports unknown, duplicate and missing jobs, bad allotments, durations, precedence and capacity."""
    return validate_schedule(request)


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc):
    logger.error("request failed", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"status": "error", "path": request.url.path})


def main():
    import uvicorn

    uvicorn.run("api.server:app", host="0.0.0.0", port=int(os.environ.get("PORT", 8000)))


if __name__ == "__main__":
    main()
