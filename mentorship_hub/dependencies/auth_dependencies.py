# mentorship_hub/dependencies/auth_dependencies.py
from typing import Callable
from fastapi import Depends, HTTPException
from ..models import User, UserRole
from ..security import get_current_active_user
from ..constants import ErrorMessages

def create_role_dependency(role: UserRole, error_message: str) -> Callable:
    """
    Factory to create role verification dependencies.
    Accounts without a role yet (no registered profile) are rejected too.
    """
    def dependency(current_user: User = Depends(get_current_active_user)) -> User:
        if current_user.role != role.value:
            raise HTTPException(
                status_code=403,
                detail={"kind": "unauthorized", "message": error_message},
            )
        return current_user

    return dependency

get_student_user = create_role_dependency(UserRole.STUDENT, ErrorMessages.UNAUTHORIZED_STUDENT)
get_mentor_user = create_role_dependency(UserRole.MENTOR, ErrorMessages.UNAUTHORIZED_MENTOR)
