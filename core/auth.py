from core.imports import get_jwt_identity, get_jwt, create_access_token
from core.errors import Forbidden

ROLES = ("customer", "shop", "admin")


def issue_token(user_id, role):
    """Mint a session token the same way the auth backend does: id as subject, role as claim."""
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    return create_access_token(identity=str(user_id), additional_claims={"role": role})


def current_actor():
    identity = get_jwt_identity()
    claims = get_jwt()
    return int(identity), claims.get("role")


def require_role(*roles):
    user_id, role = current_actor()
    if role not in roles:
        raise Forbidden("Unauthorized")
    return user_id


def bearer_token(request):
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):]
    return None
