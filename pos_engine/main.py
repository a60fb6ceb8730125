import logging

from fastapi import FastAPI
from pos_engine.config import LOG_LEVEL
from pos_engine.router import calc, cost, tools

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="POS Pricing Engine", version="1.0")

app.include_router(calc.router, prefix="", tags=["calc"])
app.include_router(cost.router)
app.include_router(tools.router, tags=["tools"])
