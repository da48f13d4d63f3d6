"""
Cooperative Lending API Application Factory
"""

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from .loans import router as loans_router
from .treasury import router as treasury_router


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Cooperative Lending API",
        description="Loan amortization, interest accrual and penalty engine for a lending cooperative",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    app.include_router(loans_router, prefix="/loans", tags=["Loans"])
    app.include_router(treasury_router, tags=["Treasury"])
    
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "coop_lending_api",
            "version": __version__
        }

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Cooperative Lending API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "loans": "/loans",
                "treasury": "/treasury",
                "schedules": "/schedules",
                "contributions": "/contributions"
            }
        }
    
    return app


app = create_app()


def run_server(host: str = "0.0.0.0", port: int = 8090, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "coop_lending.api:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )
