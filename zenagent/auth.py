import hmac

from fastapi import Header, HTTPException, Request, status


def require_token(request: Request, x_api_token: str | None = Header(default=None, alias="X-API-Token")) -> None:
    expected = request.app.state.settings.api_token
    if not expected or not x_api_token or not hmac.compare_digest(x_api_token.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
