"""
Erreurs métier.

Les services lèvent ces exceptions, la couche HTTP les traduit en
`{"error": message}` avec le status correspondant (voir `http_status`).
"""


class KoloaError(Exception):
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(KoloaError):
    """Entrée invalide ou hors bornes."""

    http_status = 400


class NotFoundError(KoloaError):
    http_status = 404


class StateConflictError(KoloaError):
    """Opération interdite dans l'état courant (ex: confirmer une commande annulée)."""

    http_status = 400


class AuthenticationError(KoloaError):
    http_status = 401


class PermissionDeniedError(KoloaError):
    http_status = 403


class AccountBlockedError(KoloaError):
    http_status = 423


class TooManyAttemptsError(KoloaError):
    http_status = 429
