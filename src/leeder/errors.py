from __future__ import annotations

from collections.abc import Iterable


class LeederError(Exception):
    default_message = "Une erreur est survenue"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(LeederError):
    default_message = "Veuillez remplir tous les champs obligatoires"

    def __init__(self, message: str | None = None, *, missing_fields: Iterable[str] = ()):
        super().__init__(message)
        self.missing_fields = list(missing_fields)


class InvalidTransitionError(ValidationError):
    def __init__(self, entity: str, current: str, target: str):
        super().__init__(f"Transition {entity} impossible : {current} -> {target}")
        self.entity = entity
        self.current = current
        self.target = target


class ConflictError(LeederError):
    default_message = "Cet élément existe déjà"


class StoreError(LeederError):
    default_message = "Erreur lors de l'accès aux données"


class NotFoundError(StoreError):
    default_message = "Élément introuvable"


class AccessDeniedError(StoreError):
    default_message = "Accès refusé"


class AuthError(LeederError):
    default_message = "Authentification requise"


DUPLICATE_APPLICATION_MESSAGE = "Vous avez déjà postulé à cette mission"
