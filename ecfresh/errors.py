class EcfreshError(Exception):
    pass

class CartError(EcfreshError):
    pass

class CheckoutError(EcfreshError):
    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = list(errors or [message])

class StoreError(EcfreshError):
    pass

class AccountDirectoryError(EcfreshError):
    pass

class IdentityError(EcfreshError):
    pass
