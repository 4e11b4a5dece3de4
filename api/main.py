"""
v4swap - Standalone API
Quotes and single-pool Uniswap v4 swaps through the Universal Router
"""

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from api.routers import swap as swap_router
from api.services.swap_service import swap_service
from v4swap import __version__
from v4swap.logging import log

# Create FastAPI app
app = FastAPI(
    title="v4swap API",
    description="Uniswap v4 swap transaction builder and quote engine",
    version=__version__,
)


@app.on_event("shutdown")
async def shutdown_event():
    """Stop local processing of in-flight swap attempts."""
    log.info("Application shutdown: cancelling in-flight swap attempts...")
    await swap_service.shutdown()


@app.api_route("/health", methods=["GET", "HEAD"])
async def health_check():
    """Health check endpoint"""
    return JSONResponse(
        status_code=200,
        content={
            "status": "ok",
            "service": "v4swap",
            "version": __version__,
        },
    )


app.include_router(swap_router.router, prefix="/swap", tags=["swap"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
