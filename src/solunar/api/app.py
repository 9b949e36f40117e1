from fastapi import FastAPI
from solunar.api.public import router as public_router

app = FastAPI(title="solunar public api")
app.include_router(public_router)
