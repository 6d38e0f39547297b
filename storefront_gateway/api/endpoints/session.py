from fastapi import APIRouter, Depends, HTTPException, status
from starlette.concurrency import run_in_threadpool
from starlette.responses import Response

from storefront_gateway.api.deps import get_session_resolver, require_authenticated
from storefront_gateway.core.session import AuthSessionResolver
from storefront_gateway.models.schemas import CredentialUpdate, SessionStatus, UserProfile

router = APIRouter()


@router.get("", response_model=SessionStatus, response_model_by_alias=True)
async def read_session(resolver: AuthSessionResolver = Depends(get_session_resolver)):
    """Logged-in signal reconciled from the federated session and the local credential."""
    return SessionStatus(
        authenticated=await resolver.is_authenticated(),
        role=await run_in_threadpool(resolver.get_role),
        user_id=await run_in_threadpool(resolver.get_user_id),
    )


@router.put("/credential", status_code=status.HTTP_204_NO_CONTENT)
def store_credential(
    update: CredentialUpdate,
    resolver: AuthSessionResolver = Depends(get_session_resolver),
):
    resolver.set_local_credential(update.token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/profile", response_model=UserProfile, response_model_by_alias=True)
def read_profile(resolver: AuthSessionResolver = Depends(require_authenticated)):
    profile = resolver.get_profile()
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No cached profile"
        )
    return profile


@router.put("/profile", status_code=status.HTTP_204_NO_CONTENT)
def replace_profile(
    profile: UserProfile,
    resolver: AuthSessionResolver = Depends(get_session_resolver),
):
    """Overwrite the cached profile as a whole record."""
    resolver.set_profile(profile)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(resolver: AuthSessionResolver = Depends(get_session_resolver)):
    resolver.logout()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
