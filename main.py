# main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import socketio
import uvicorn

from db.db import init_db, close_db_connection, get_db
from db.init_db import init_db_indexes
from helpers.errors import register_exception_handlers
from middleware.request_logging import RequestLoggingMiddleware
from realtime import EventOutbox, InMemoryPresenceRegistry, RealtimeDispatcher, create_socket_server
from repos.conversation_repo import ConversationRepository
from repos.user_repo import UserRepository
from routes.routes import setup_routes
from logger.logger import logger

# Try to import config - if any required configs are missing,
# the app will exit before starting
try:
    import config
except Exception as e:
    logger.critical(f"Failed to load configuration: {e}")
    import sys
    sys.exit(1)


async def load_user(user_id: str):
    db = await get_db()
    return await UserRepository(db).get_user_by_id(user_id)

async def load_conversation(conversation_id: str, user_id: str):
    db = await get_db()
    conversation = await ConversationRepository(db).get_by_id(conversation_id)
    if conversation is None or not conversation.is_participant(user_id):
        return None
    return conversation


# Initialize FastAPI app
app = FastAPI(title="Direct Messaging API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

# Realtime: presence and the socket server live for the whole process
sio = create_socket_server(config.CORS_ORIGINS)
presence = InMemoryPresenceRegistry()
dispatcher = RealtimeDispatcher(sio, presence, load_user, load_conversation)
dispatcher.register_handlers()
outbox = EventOutbox(dispatcher.dispatch)

app.state.presence = presence
app.state.outbox = outbox
app.state.dispatcher = dispatcher

# Setup routes
setup_routes(app)

# Socket.IO answers on /socket.io, everything else goes to FastAPI
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app)

# Startup and shutdown events
@app.on_event("startup")
async def startup_db_client():
    logger.info("Starting up application")
    await init_db()

    db = await get_db()
    await init_db_indexes(db)
    await outbox.start()

@app.on_event("shutdown")
async def shutdown_db_client():
    logger.info("Shutting down application")
    await outbox.stop()
    await dispatcher.close()
    await close_db_connection()

if __name__ == "__main__":
    uvicorn.run("main:asgi_app", host="0.0.0.0", port=8000, reload=True)
