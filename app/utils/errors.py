"""Custom exception hierarchy for the elections API."""

from __future__ import annotations


class AppError(Exception):
    """Base application error with a stable machine-readable code."""

    def __init__(self, message: str, code: str, status_code: int = 400) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Serialize the error in the API standard shape."""
        return {"success": False, "error": self.message, "code": self.code}


class NotFoundError(AppError):
    """Raised when a requested resource does not exist."""

    def __init__(self, resource: str, message: str | None = None) -> None:
        super().__init__(
            message=message or f"{resource} introuvable",
            code="NOT_FOUND",
            status_code=404,
        )
        self.resource = resource


class ForbiddenError(AppError):
    """Raised when the user lacks permission for the action."""

    def __init__(self, reason: str = "Accès refusé") -> None:
        super().__init__(message=reason, code="FORBIDDEN", status_code=403)


class NotAMemberError(AppError):
    """Raised when the actor has no linked member profile."""

    def __init__(
        self,
        reason: str = (
            "Vous devez être adhérent pour effectuer cette action. "
            "Veuillez compléter votre profil adhérent depuis votre espace personnel."
        ),
    ) -> None:
        super().__init__(message=reason, code="NOT_A_MEMBER", status_code=403)


class ConflictError(AppError):
    """Raised on duplicate/conflicting operations."""

    def __init__(self, reason: str, code: str = "CONFLICT") -> None:
        super().__init__(message=reason, code=code, status_code=409)


class ElectionNotOpenError(ConflictError):
    """Raised when a candidacy or vote targets an election that is not open."""

    def __init__(self, reason: str = "L'élection n'est pas ouverte") -> None:
        super().__init__(reason, code="ELECTION_NOT_OPEN")


class DuplicateCandidacyError(ConflictError):
    """Raised when a member already applied for a position."""

    def __init__(
        self, reason: str = "Vous avez déjà postulé pour ce poste dans cette élection."
    ) -> None:
        super().__init__(reason, code="DUPLICATE_CANDIDACY")


class DuplicateVoteError(ConflictError):
    """Raised when a member already voted for a position."""

    def __init__(self, reason: str = "Vous avez déjà voté pour ce poste") -> None:
        super().__init__(reason, code="DUPLICATE_VOTE")


class UnauthorizedError(AppError):
    """Raised when the caller is not authenticated."""

    def __init__(self, reason: str = "Non autorisé") -> None:
        super().__init__(message=reason, code="UNAUTHORIZED", status_code=401)


class InvalidInputError(AppError):
    """Raised for request payload or parameter validation issues."""

    def __init__(self, reason: str) -> None:
        super().__init__(message=reason, code="VALIDATION_ERROR", status_code=422)
