"""FastAPI main application for the house-rule Uno backend"""

import logging
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from .ws.server import GameWebSocketManager

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="House-Rule Uno API", version="1.0.0")

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

game_manager = GameWebSocketManager()


@app.get("/")
async def root():
    return {"message": "House-Rule Uno API", "version": "1.0.0"}


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "rooms": len(game_manager.host.rooms),
        "connections": len(game_manager.connections.connection_info)
    }


@app.get("/rooms")
async def list_rooms():
    return {"rooms": game_manager.host.list_rooms()}


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await game_manager.handle_websocket(websocket)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
