"""
Business exceptions raised by the service layer.

Routes never build error payloads for these by hand; security.setup_error_handlers
maps each class to an HTTP status and a JSON body.
"""

from typing import Optional


class BusinessError(Exception):
    """Base class for every error the service layer reports to callers."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(self.message)

    def to_dict(self):
        data = {'success': False, 'error': self.message, 'type': type(self).__name__}
        if self.field:
            data['field'] = self.field
        return data


class ValidationError(BusinessError):
    """A required field is missing or a value is out of range."""


class BudgetLockedError(ValidationError):
    """Edit attempted on a budget that is already approved or converted."""

    status_code = 409


class InvalidTransitionError(ValidationError):
    """A status change that the entity's lifecycle does not allow."""

    status_code = 409

    def __init__(self, entity: str, current: str, target: str):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"Cannot change {entity} status from '{current}' to '{target}'",
                         field='status')


class ReferentialIntegrityError(ValidationError):
    """A write would leave an id pointing at nothing."""

    status_code = 409


class InsufficientStock(BusinessError):
    """Requested quantity exceeds what the product has on hand."""

    status_code = 409

    def __init__(self, item_id: str, name: str, available: int, requested: int,
                 in_cart: int = 0):
        self.item_id = item_id
        self.name = name
        self.available = available
        self.requested = requested
        self.in_cart = in_cart
        message = (f"Estoque insuficiente para '{name}'. Disponível: {available}, "
                   f"já no carrinho: {in_cart}, solicitado: {requested}")
        super().__init__(message, field='quantity')

    def to_dict(self):
        data = super().to_dict()
        data.update({
            'item_id': self.item_id,
            'available': self.available,
            'in_cart': self.in_cart,
            'requested': self.requested,
        })
        return data


class NotFoundError(BusinessError):
    """Referenced entity id does not resolve."""

    status_code = 404

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class PersistenceError(BusinessError):
    """The data layer failed; wraps the underlying SQLAlchemy error."""

    status_code = 503


class AuthError(BusinessError):
    """Bad credentials, missing session or duplicate sign-up."""

    status_code = 401
