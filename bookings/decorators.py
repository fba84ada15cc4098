from functools import wraps

from .permissions import has_role, is_signed_in
from .utils import create_error_response


def role_required(*roles):
    """
    Decorator to ensure the user is signed in and holds one of `roles`.
    - Anonymous users → 401
    - Signed-in users without the role → 403
    """
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            user = request.user

            if not is_signed_in(user):
                return create_error_response("Unauthorized", status=401, code="unauthorized")

            if not has_role(user, *roles):
                return create_error_response(
                    f"{' or '.join(role.title() for role in roles)} access required",
                    status=403,
                    code="forbidden",
                )

            return view_func(request, *args, **kwargs)

        return _wrapped

    return decorator
