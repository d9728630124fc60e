"""Exception handlers for the FastAPI app."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from rewards_core.api.dependencies import InvalidApiKeyError
from rewards_core.services.claims import ClaimCooldownError, ClaimSequenceError, InvalidClaimDayError
from rewards_core.services.rewards import RewardNotFoundError, RewardStateConflictError
from rewards_core.services.users import (
    AdminRequiredError,
    PrincipalMissingError,
    SteamIdMissingError,
    UserNotFoundError,
)

LOGGER = logging.getLogger("rewards_core.api")


def _error(status_code: int, message: str, **extra: object) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"success": False, "message": message, **extra}),
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PrincipalMissingError)
    async def principal_missing_handler(request: Request, exc: PrincipalMissingError) -> JSONResponse:  # noqa: WPS430
        return _error(401, str(exc))

    @app.exception_handler(InvalidApiKeyError)
    async def invalid_api_key_handler(request: Request, exc: InvalidApiKeyError) -> JSONResponse:  # noqa: WPS430
        return _error(401, str(exc))

    @app.exception_handler(AdminRequiredError)
    async def admin_required_handler(request: Request, exc: AdminRequiredError) -> JSONResponse:  # noqa: WPS430
        return _error(403, str(exc))

    @app.exception_handler(UserNotFoundError)
    async def user_not_found_handler(request: Request, exc: UserNotFoundError) -> JSONResponse:  # noqa: WPS430
        return _error(404, str(exc))

    @app.exception_handler(RewardNotFoundError)
    async def reward_not_found_handler(request: Request, exc: RewardNotFoundError) -> JSONResponse:  # noqa: WPS430
        return _error(404, str(exc))

    @app.exception_handler(RewardStateConflictError)
    async def reward_conflict_handler(request: Request, exc: RewardStateConflictError) -> JSONResponse:  # noqa: WPS430
        return _error(409, str(exc))

    @app.exception_handler(SteamIdMissingError)
    async def steam_id_missing_handler(request: Request, exc: SteamIdMissingError) -> JSONResponse:  # noqa: WPS430
        return _error(400, str(exc))

    @app.exception_handler(InvalidClaimDayError)
    async def invalid_day_handler(request: Request, exc: InvalidClaimDayError) -> JSONResponse:  # noqa: WPS430
        return _error(400, str(exc))

    @app.exception_handler(ClaimSequenceError)
    async def claim_sequence_handler(request: Request, exc: ClaimSequenceError) -> JSONResponse:  # noqa: WPS430
        return _error(400, str(exc), nextDay=exc.next_day)

    @app.exception_handler(ClaimCooldownError)
    async def cooldown_handler(request: Request, exc: ClaimCooldownError) -> JSONResponse:  # noqa: WPS430
        return _error(
            400,
            str(exc),
            canClaim=False,
            hoursToWait=exc.eligibility.hours_to_wait,
            nextClaimTime=exc.eligibility.next_claim_time,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: WPS430
        return _error(400, "Dados inválidos", detail=exc.errors())

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception) -> JSONResponse:  # noqa: WPS430
        LOGGER.exception("unhandled_exception", extra={"path": request.url.path, "method": request.method})
        request.app.state.monitoring.log_event(
            "api_error",
            {"path": request.url.path, "method": request.method, "error": str(exc)},
        )
        return _error(500, "Erro interno")
