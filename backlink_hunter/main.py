# file: backlink_hunter/main.py
import os
from datetime import datetime, timezone
from typing import Optional

import requests
from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse

from backlink_hunter.agent.context import AgentServices
from backlink_hunter.config import get_settings
from backlink_hunter.logging_config import setup_logging
from backlink_hunter.orchestrator import AgentOrchestrator, InvalidChatRequest, ProjectNotFound
from backlink_hunter.schema import ChatRequest, ChatResponse, Identity

setup_logging()

app = FastAPI(title="Backlink Hunter Agent", version="0.1.0")
app.state.services = AgentServices.default()


def get_services() -> AgentServices:
    return app.state.services


def get_identity(
    x_user_id: Optional[str] = Header(None),
    x_org_id: Optional[str] = Header(None),
) -> Identity:
    if not x_user_id or not x_org_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return Identity(user_id=x_user_id, org_id=x_org_id)


@app.get("/health")
async def health():
    """Health check with Ollama connectivity test"""
    s = get_settings()
    try:
        resp = requests.get(f"{s.ollama_base}/api/tags", timeout=2)
        ollama_ok = resp.status_code == 200
    except requests.RequestException:
        ollama_ok = False

    return {
        "status": "healthy" if ollama_ok else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "ollama": {"connected": ollama_ok, "base_url": s.ollama_base, "model": s.ollama_model},
        "providers": {
            "search": s.online_search,
            "metrics": s.metrics_configured,
            "contacts": s.contacts_configured,
        },
    }


@app.post("/agent/chat", response_model=ChatResponse)
async def agent_chat(
    request: ChatRequest,
    identity: Identity = Depends(get_identity),
    services: AgentServices = Depends(get_services),
):
    """Run the agent for one user message and return its final answer."""
    orchestrator = AgentOrchestrator(services)
    try:
        return await orchestrator.run(request.project_id, identity, request.messages)
    except InvalidChatRequest as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except ProjectNotFound as e:
        return JSONResponse(status_code=404, content={"error": str(e)})


def run():
    import uvicorn
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))


if __name__ == "__main__":
    run()
