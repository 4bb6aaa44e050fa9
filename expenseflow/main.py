from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .config import settings
from .core.errors import register_error_handlers
from .database import init_db
from .logging_config import get_logger, setup_logging
from .routers import approval_rules as approval_rules_router
from .routers import auth as auth_router
from .routers import company as company_router
from .routers import expenses as expenses_router
from .routers import receipts as receipts_router
from .routers import reference as reference_router
from .routers import users as users_router

logger = get_logger(__name__)


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title="ExpenseFlow – Backend", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    @app.on_event("startup")
    def on_startup():
        init_db()
        logger.info("startup", environment=settings.environment, port=settings.port)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(auth_router.router)
    app.include_router(users_router.router)
    app.include_router(company_router.router)
    app.include_router(expenses_router.router)
    app.include_router(approval_rules_router.router)
    app.include_router(reference_router.router)
    app.include_router(receipts_router.router)

    return app


app = create_app()


def run():
    import uvicorn

    uvicorn.run("expenseflow.main:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
