"""
Solar Helpdesk Backend - Main Application

Subscriber synchronization, caching and ticket write-through for the
support console. Airtable is the subscriber source of truth; Supabase
holds tickets and the subscriber replica.
"""

from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
import os
import logging

from helpdesk.routers import sync, subscribers, tickets, mail
from helpdesk.scheduler import start_scheduler, stop_scheduler
from helpdesk.services.registry import ServiceRegistry, build_services

load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_app(services: Optional[ServiceRegistry] = None) -> FastAPI:
    """Build the app; `services` overrides the environment-built registry"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events"""
        logger.info("Starting Solar Helpdesk Backend...")
        app.state.services = services or build_services()
        start_scheduler(app.state.services)
        yield
        logger.info("Shutting down Solar Helpdesk Backend...")
        stop_scheduler()

    app = FastAPI(
        title="Solar Helpdesk Backend",
        description="Subscriber sync, caching and ticket write-through for the support console",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(subscribers.router, prefix="/api/subscribers", tags=["Subscribers"])
    app.include_router(tickets.router, prefix="/api/tickets", tags=["Tickets"])
    app.include_router(mail.router, prefix="/api/mail", tags=["Mail"])
    app.include_router(sync.router, prefix="/api/sync", tags=["Subscriber Sync"])

    @app.get("/")
    def read_root():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "Solar Helpdesk Backend",
            "version": "1.0.0",
            "docs": "/docs"
        }

    @app.get("/health")
    def health_check():
        """Detailed health check"""
        registry: ServiceRegistry = app.state.services
        cache = registry.subscriber_cache
        return {
            "status": "healthy",
            "airtable_configured": registry.airtable is not None,
            "supabase_configured": registry.store is not None,
            "subscribers": {
                "source": cache.source,
                "initialized": cache.initialized,
                "count": len(cache.subscribers),
                "manual_entry": cache.manual_entry,
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", 8000)), reload=True)
