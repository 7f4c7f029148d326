"""CORS for the API routes.

Service functions under ``/functions/`` send their own CORS headers and
answer their own preflight, so requests to them pass straight through.
"""
from starlette.middleware.cors import CORSMiddleware
from starlette.types import Receive, Scope, Send

FUNCTIONS_PREFIX = "/functions/"


class APICORSMiddleware(CORSMiddleware):
    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"].startswith(FUNCTIONS_PREFIX):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)
