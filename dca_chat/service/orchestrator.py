"""
Chat orchestration.

Every message goes through the same ordered steps:

1. confirmation token with accept/cancel action
2. general conversation answered from canned replies
3. plan-creation turn (extractor + session store)
4. DCA backend queries (show plans, platform stats)
5. anything else is forwarded to the DCA agent, with a local fallback
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from dca_chat.bridge import AgentBridge, BridgeError
from dca_chat.infrastructure.logging import LoggerMixin
from dca_chat.integrations.dca_backend import DcaBackendClient, DcaBackendError
from dca_chat.models.chat import ChatResponse
from dca_chat.plans import confirmation
from dca_chat.plans.errors import MalformedToken, PlanValidationError, WalletRequired
from dca_chat.plans.extractor import PlanExtractor
from dca_chat.plans.plan import ExtractionResult, creation_instruction, plan_summary
from dca_chat.plans.sessions import PlanSessionStore

from . import replies

ACCEPT_ACTIONS = frozenset({"accept", "confirm"})
CANCEL_ACTIONS = frozenset({"cancel", "reject"})


def require_wallet(user_address: Optional[str]) -> str:
    if not user_address:
        raise WalletRequired()
    return user_address


class ChatOrchestrator(LoggerMixin):
    """Routes one chat message to canned replies, plan collection, the backend or the agent."""

    def __init__(
        self,
        bridge: AgentBridge,
        extractor: PlanExtractor,
        sessions: PlanSessionStore,
        backend: Optional[DcaBackendClient] = None,
    ) -> None:
        self.bridge = bridge
        self.extractor = extractor
        self.sessions = sessions
        self.backend = backend

    @classmethod
    def from_settings(cls, settings) -> "ChatOrchestrator":
        return cls(
            bridge=AgentBridge.from_settings(settings),
            extractor=PlanExtractor.from_settings(settings),
            sessions=PlanSessionStore(
                ttl=settings.session_ttl,
                transcript_limit=settings.transcript_limit,
            ),
            backend=DcaBackendClient(),
        )

    async def aclose(self) -> None:
        await self.bridge.aclose()
        if self.backend is not None:
            await self.backend.aclose()

    async def handle(
        self,
        message: str,
        *,
        user_address: Optional[str] = None,
        history: Sequence[Mapping[str, Any]] = (),
        confirmation_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> ChatResponse:
        action = (action or "").strip().lower()
        if confirmation_id and action in ACCEPT_ACTIONS | CANCEL_ACTIONS:
            return await self._handle_confirmation(confirmation_id, action, user_address)

        category = replies.classify_general(message)
        if category is not None:
            self.logger.debug("Answering general %s message locally", category)
            return replies.canned_reply(category)

        if self.sessions.is_plan_creation_intent(message, user_address):
            return await self._collect_plan(message, user_address)

        backend_reply = await self._query_backend(message, user_address)
        if backend_reply is not None:
            return backend_reply

        return await self._forward_to_agent(message, user_address, history)

    # ---- step 1: confirmation ----------------------------------------------
    async def _handle_confirmation(
        self, token: str, action: str, user_address: Optional[str]
    ) -> ChatResponse:
        try:
            plan = confirmation.decode(token)
        except MalformedToken as exc:
            self.logger.warning("Rejected confirmation token: %s", exc)
            return ChatResponse(
                success=False,
                response=replies.MALFORMED_TOKEN_MESSAGE,
                action="confirmation_failed",
            )

        if action in CANCEL_ACTIONS:
            self.sessions.clear(user_address)
            self.logger.info("Plan creation cancelled for %s", user_address or "anonymous")
            return ChatResponse(response=replies.CANCELLED_MESSAGE, action="plan_cancelled")

        try:
            wallet = require_wallet(user_address)
            plan.require_complete()
        except WalletRequired:
            return ChatResponse(
                success=False,
                response=replies.WALLET_REQUIRED_MESSAGE,
                action="request_wallet_connection",
            )
        except PlanValidationError as exc:
            self.logger.warning("Confirmed plan failed validation: %s", exc)
            return ChatResponse(
                success=False,
                response=f"{replies.MALFORMED_TOKEN_MESSAGE}\n\n• " + "\n• ".join(exc.errors or [str(exc)]),
                action="confirmation_failed",
            )

        try:
            reply = await self.bridge.ask(creation_instruction(plan, wallet), wallet)
        except BridgeError as exc:
            self.logger.warning("Plan creation via agent failed: %s", exc)
            return ChatResponse(
                success=False,
                response=replies.CREATE_FAILED_MESSAGE,
                action="plan_creation_failed",
                data={"planData": plan.to_dict()},
            )

        self.sessions.clear(wallet)
        self.logger.info("Plan created for %s", wallet)
        return ChatResponse(
            response=reply or replies.PLAN_CREATED_DEFAULT,
            action="plan_created",
            data={"planData": plan.to_dict()},
        )

    # ---- step 3: plan collection -------------------------------------------
    async def _collect_plan(self, message: str, user_address: Optional[str]) -> ChatResponse:
        session = self.sessions.get_or_create(user_address)
        context = self.sessions.conversation_context(user_address)
        self.sessions.append_transcript(user_address, "user", message)

        result = await self.extractor.extract(message, context, session.fields)
        self.sessions.merge_fields(user_address, result.plan_data)

        if result.is_complete:
            response = self._confirmation_reply(result)
        else:
            response = ChatResponse(
                response=self._next_question_text(result),
                action="collect_plan_details",
                data={
                    "planData": result.plan_data.to_dict(),
                    "missingFields": list(result.missing_fields),
                },
            )
        self.sessions.append_transcript(user_address, "assistant", response.response)
        return response

    @staticmethod
    def _next_question_text(result: ExtractionResult) -> str:
        question = result.next_question or "Could you tell me more about the plan you'd like to create?"
        if result.validation_errors and result.missing_fields:
            problems = "\n".join(f"• {error}" for error in result.validation_errors)
            return f"⚠️ {problems}\n\n{question}"
        return question

    @staticmethod
    def _confirmation_reply(result: ExtractionResult) -> ChatResponse:
        plan = result.plan_data
        token = confirmation.encode(plan)
        return ChatResponse(
            response=(
                "✅ Great! I have everything needed for your DCA plan.\n\n"
                f"{plan_summary(plan)}\n\n"
                "Please **confirm** to create this plan or **cancel** to discard it."
            ),
            action="confirm_plan",
            data={"confirmationId": token, "planData": plan.to_dict()},
        )

    # ---- step 4: backend queries -------------------------------------------
    async def _query_backend(self, message: str, user_address: Optional[str]) -> Optional[ChatResponse]:
        if self.backend is None:
            return None
        try:
            if replies.is_show_plans_query(message):
                if not user_address:
                    return replies.show_plans_requires_wallet()
                return replies.format_plans(await self.backend.get_user_plans(user_address))
            if replies.is_stats_query(message):
                return replies.format_stats(await self.backend.get_platform_stats())
        except DcaBackendError as exc:
            self.logger.warning("DCA backend query failed, forwarding to agent: %s", exc)
        return None

    # ---- step 5: agent -----------------------------------------------------
    async def _forward_to_agent(
        self,
        message: str,
        user_address: Optional[str],
        history: Sequence[Mapping[str, Any]],
    ) -> ChatResponse:
        instruction = replies.format_message_with_context(message, user_address, history)
        try:
            reply = await self.bridge.ask(instruction, user_address)
        except BridgeError as exc:
            self.logger.warning("Agent unavailable (%s), using fallback reply", type(exc).__name__)
            return replies.fallback_reply(message, user_address)
        return ChatResponse(response=reply, action=replies.analyze_response_for_actions(reply))


def history_dicts(turns: Sequence[Any]) -> List[Dict[str, Any]]:
    """Normalise pydantic turns or plain mappings into ``{role, content}`` dicts."""
    normalised: List[Dict[str, Any]] = []
    for turn in turns:
        if hasattr(turn, "model_dump"):
            turn = turn.model_dump()
        normalised.append({"role": turn.get("role"), "content": turn.get("content")})
    return normalised
