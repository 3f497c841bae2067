import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from dca_chat.config import get_settings
from dca_chat.infrastructure.logging import chat_context
from dca_chat.infrastructure.rate_limiter import limit_chat, setup_rate_limiter
from dca_chat.models.chat import ChatRequest, ChatResponse
from dca_chat.plans.sessions import SessionSweeper
from dca_chat.service.orchestrator import ChatOrchestrator, history_dicts

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    orchestrator = ChatOrchestrator.from_settings(settings)
    sweeper = SessionSweeper(orchestrator.sessions, settings.session_sweep_interval)
    app.state.orchestrator = orchestrator
    sweeper.start()
    logger.info("DCA chat service ready (agent at %s)", settings.agent_base_url)
    try:
        yield
    finally:
        await sweeper.stop()
        await orchestrator.aclose()
        app.state.orchestrator = None


# Initialize FastAPI app
app = FastAPI(title="DCA Chat API", version="1.0", lifespan=lifespan)

# Enable CORS for the mini-app frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
setup_rate_limiter(app)


def get_orchestrator(request: Request) -> ChatOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Chat service is not ready")
    return orchestrator


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/sessions/stats")
def session_stats(orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    return orchestrator.sessions.stats()


@app.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
@limit_chat
async def chat(
    request: Request,
    payload: ChatRequest,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    with chat_context(payload.user_address):
        logger.info("Received chat message (wallet=%s)", payload.user_address or "none")
        try:
            return await orchestrator.handle(
                payload.message,
                user_address=payload.user_address,
                history=history_dicts(payload.conversation_history),
                confirmation_id=payload.confirmation_id,
                action=payload.action.value if payload.action else None,
            )
        except Exception as e:
            logger.exception("Chat request failed")
            raise HTTPException(status_code=500, detail="Internal server error") from e
