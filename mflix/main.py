from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mflix.config import get_settings
from mflix.routers import admin, auth, content, payment, recommendations
from mflix.services.origin_transport import OriginTransports

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    transports = OriginTransports.from_settings(settings)
    app.state.origin_transports = transports
    try:
        yield
    finally:
        await transports.aclose()


app = FastAPI(title="mflix API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(content.router)
app.include_router(payment.router)
app.include_router(recommendations.router)
app.include_router(admin.router)


@app.get("/")
def root():
    return {"message": "Welcome to mflix", "docs": "/docs"}
