"""
API Gateway for DevConnector

Single entry point for clients. Routes account and authentication requests
to the users service and everything under /posts to the posts service,
forwarding the Authorization header untouched.
"""

import logging
import os
from fastapi import FastAPI, Request, HTTPException, status
from fastapi.responses import Response
import httpx

from shared.log import configure_logging


configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="DevConnector API Gateway")

USERS_SERVICE_URL = os.getenv("USERS_SERVICE_URL", "http://localhost:5100")
POSTS_SERVICE_URL = os.getenv("POSTS_SERVICE_URL", "http://localhost:5200")

HTTP_TIMEOUT = 30.0

# Headers recomputed per connection; httpx has already decoded the body
HOP_HEADERS = ("host", "connection", "content-length", "content-encoding", "transfer-encoding")


async def proxy_request(request: Request, service_url: str, path: str) -> Response:
    """
    Proxy a request to a backend service.

    Args:
        request: The incoming FastAPI request
        service_url: Base URL of the backend service
        path: Path to append to service_url (should start with /)

    Returns:
        Response from the backend service
    """
    url = f"{service_url}{path}"

    body = None
    if request.method in ("POST", "PUT", "PATCH", "DELETE"):
        body = await request.body()

    headers = {k: v for k, v in request.headers.items() if k.lower() not in HOP_HEADERS}
    params = dict(request.query_params)

    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT, follow_redirects=True) as client:
            response = await client.request(
                method=request.method,
                url=url,
                headers=headers,
                params=params,
                content=body,
            )
    except httpx.TimeoutException:
        logger.warning("Timeout proxying %s %s", request.method, url)
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="Backend service timeout"
        )
    except httpx.ConnectError:
        logger.warning("Cannot connect to %s", service_url)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Cannot connect to backend service"
        )
    except httpx.HTTPError as e:
        logger.warning("Gateway error proxying %s %s: %s", request.method, url, e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Gateway error: {str(e)}"
        )

    response_headers = {k: v for k, v in response.headers.items() if k.lower() not in HOP_HEADERS}
    return Response(
        content=response.content,
        status_code=response.status_code,
        headers=response_headers,
        media_type=response.headers.get("content-type"),
    )


# Route: Users Service endpoints
@app.api_route("/auth", methods=["GET", "POST"])
async def users_service_auth_proxy(request: Request):
    """Proxy login and current-user requests to the users service."""
    return await proxy_request(request, USERS_SERVICE_URL, "/auth")


@app.api_route("/users", methods=["POST"])
async def users_service_root_proxy(request: Request):
    """Proxy registration to the users service."""
    return await proxy_request(request, USERS_SERVICE_URL, "/users")


@app.api_route("/users/{path:path}", methods=["GET"])
async def users_service_proxy(request: Request, path: str):
    """Proxy profile lookups to the users service."""
    return await proxy_request(request, USERS_SERVICE_URL, f"/users/{path}")


# Route: Posts Service endpoints
@app.api_route("/posts", methods=["GET", "POST"])
async def posts_service_root_proxy(request: Request):
    """Proxy requests to /posts endpoint."""
    return await proxy_request(request, POSTS_SERVICE_URL, "/posts")


@app.api_route("/posts/{path:path}", methods=["GET", "POST", "PUT", "DELETE"])
async def posts_service_proxy(request: Request, path: str):
    """Proxy requests to the posts service."""
    return await proxy_request(request, POSTS_SERVICE_URL, f"/posts/{path}")


@app.get("/health")
async def health_check():
    """Health check endpoint for the gateway."""
    return {"status": "ok", "service": "gateway"}


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": "DevConnector API Gateway",
        "version": "1.0.0",
        "endpoints": {
            "users": USERS_SERVICE_URL,
            "posts": POSTS_SERVICE_URL,
        },
        "docs": "/docs",
    }
