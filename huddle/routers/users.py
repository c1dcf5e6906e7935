"""
Users router - profile of the signed-in user.
Requires a valid session credential (Authorization: Bearer <token>).
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from huddle.db.session import get_db
from huddle.deps import get_current_identity
from huddle.models.user import User
from huddle.schemas.auth import SessionIdentity
from huddle.schemas.user import UserOut

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserOut)
def read_current_user(
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """
    Get the signed-in user's profile.

    The web client calls this right after login to display the user and to
    check the stored credential still works.

    Raises:
        401 Unauthorized: No valid credential on the request
        404 Not Found: The account behind the credential no longer exists
    """
    user = db.get(User, identity.user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user
