"""HTTP ingress for DRIP faucet.

Endpoints (in addition to the health routes):
- POST /faucet: claim tokens, body ``{"address": "0x..."}``
"""

import logging

from aiohttp import web

from drip.faucet.service import DispatchStatus, FaucetService
from drip.observability.health import HealthServer
from drip.observability.logging import clear_request_id, new_request_id

logger = logging.getLogger(__name__)

# Error code the web client matches on for repeat claims
ALREADY_SENT = "already_sent"

_CONFLICT_STATUSES = (DispatchStatus.ALREADY_CLAIMED, DispatchStatus.CLAIM_IN_PROGRESS)


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


class FaucetServer(HealthServer):
    """HTTP server exposing the claim endpoint next to health and metrics.

    Parameters
    ----------
    faucet : FaucetService
        Dispatch coordinator handling claims.
    host : str
        Host to bind to.
    port : int
        Port to bind to.
    """

    def __init__(self, faucet: FaucetService, host: str = "0.0.0.0", port: int = 8080):  # noqa: S104
        super().__init__(host=host, port=port)
        self._faucet = faucet

    def _build_app(self) -> web.Application:
        app = super()._build_app()
        app.router.add_post("/faucet", self._handle_faucet)
        return app

    async def _handle_faucet(self, request: web.Request) -> web.Response:
        """Handle POST /faucet."""
        request_id = new_request_id("http")
        try:
            try:
                body = await request.json()
            except ValueError as e:
                logger.warning("Failed to parse request body", extra={"error": str(e)})
                return _error("Invalid request body", 400)

            address = body.get("address") if isinstance(body, dict) else None
            if not isinstance(address, str):
                return _error("Invalid request body", 400)

            result = await self._faucet.dispatch(address, channel="http")

            if result.success:
                response = web.json_response({"txHash": result.tx_hash})
            elif result.status == DispatchStatus.INVALID_ADDRESS:
                response = _error(f"Invalid address: {result.message}", 400)
            elif result.status in _CONFLICT_STATUSES:
                response = _error(ALREADY_SENT, 409)
            else:
                logger.error(
                    "Faucet error",
                    extra={"status": result.status.value, "error": result.message},
                )
                response = _error("Failed to send transaction", 500)

            response.headers["X-Request-ID"] = request_id
            return response
        except Exception:
            logger.exception("Unhandled error in /faucet")
            return _error("Failed to send transaction", 500)
        finally:
            clear_request_id()
