from shadanga.core.constants import RoleEnum
from shadanga.core.exceptions import PermissionDeniedError
from shadanga.schemas.user import UserContext


class PermissionHelper:
    @staticmethod
    def is_admin(context: UserContext) -> bool:
        return context.role == RoleEnum.ADMIN

    @staticmethod
    def is_facilitator(context: UserContext) -> bool:
        return context.role == RoleEnum.FACILITATOR

    @staticmethod
    def is_learner(context: UserContext) -> bool:
        return context.role == RoleEnum.LEARNER

    @staticmethod
    def can_manage_lessons(context: UserContext) -> bool:
        return context.role in (RoleEnum.ADMIN, RoleEnum.FACILITATOR)

    @staticmethod
    def require_admin(context: UserContext) -> None:
        if not PermissionHelper.is_admin(context):
            raise PermissionDeniedError("Admin access required.")

    @staticmethod
    def require_facilitator_or_admin(context: UserContext) -> None:
        if not PermissionHelper.can_manage_lessons(context):
            raise PermissionDeniedError("Facilitator or admin access required.")

    @staticmethod
    def require_learner(context: UserContext) -> None:
        if not PermissionHelper.is_learner(context):
            raise PermissionDeniedError("Only learners can perform this action.")
