# main.py
import logging

import uvicorn
from fastapi import FastAPI

from family_planner.config import LOG_LEVEL
from family_planner.routers import api

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(
    title="Family Planner",
    redirect_slashes=False,
)

# Include routers
app.include_router(api.router)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
