class MarketplaceError(Exception):
    """Base class for errors the routes turn into notices or 404 pages."""


class ValidationError(MarketplaceError):
    pass


class DuplicateKey(MarketplaceError):
    pass


class InvalidCredentials(MarketplaceError):
    def __init__(self, message: str = "Invalid email or password."):
        super().__init__(message)


class NotFound(MarketplaceError):
    pass
