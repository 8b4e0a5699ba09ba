from fastapi import FastAPI
from .conversations import router as conversations_router
from .messages import router as messages_router
from .search import router as search_router

def setup_routes(app: FastAPI):
    # You can add other routes directly to app here if needed
    @app.get("/")
    async def root():
        return {"message": "API is alive!"}

    # Include the router with a prefix
    app.include_router(
        conversations_router,
        prefix="/conversations",
        tags=["conversations"],
    )

    app.include_router(
        messages_router,
        prefix="/messages",
        tags=["messages"],
    )

    app.include_router(
        search_router,
        prefix="/search",
        tags=["search"],
    )
