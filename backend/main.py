# backend/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from dotenv import load_dotenv

from config import settings
from database import init_db
from services.errors import StockAppError
from utils.storage import upload_dir, PUBLIC_PREFIX

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Routers
from routes.auth import router as auth_router
from routes.admin import router as admin_router
from routes.logs import router as logs_router
from routes.reference import router as reference_router
from routes.products import router as products_router
from routes.stock import router as stock_router
from routes.exit_requests import router as exit_requests_router
from routes.cart import router as cart_router
from routes.orders import router as orders_router
from routes.inventory import router as inventory_router
from routes.stats import router as stats_router

# Initialisation
init_db()

app = FastAPI(title="Stock App API", version="1.0.0")

# Uploads - make sure the directory exists before mounting
app.mount(PUBLIC_PREFIX, StaticFiles(directory=str(upload_dir())), name="uploads")

# CORS Configuration
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Workflow errors carry their own status and code
@app.exception_handler(StockAppError)
async def stock_app_error_handler(request: Request, exc: StockAppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})


# Router registration
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(logs_router)
app.include_router(reference_router)
app.include_router(products_router)
app.include_router(exit_requests_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(inventory_router)
app.include_router(stats_router)

# Stock ledger
app.include_router(stock_router, prefix="/stock")

@app.get("/")
def read_root():
    return {"message": "Stock App API is running"}
