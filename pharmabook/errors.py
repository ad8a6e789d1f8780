class PharmaBookError(Exception):
    """Base class for errors raised by the intake stack."""


class ValidationError(PharmaBookError):
    def __init__(self, title: str, message: str):
        super().__init__(message)
        self.title = title
        self.message = message


class StoreError(PharmaBookError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class FetchError(StoreError):
    pass
