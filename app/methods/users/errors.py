# /app/methods/users/errors.py
"""Error kinds raised by the user store. All of them leave stored rows unchanged."""


class UserStoreError(RuntimeError): ...

class ValidationError(UserStoreError): ...
class NotFound(UserStoreError): ...
class DuplicateKey(UserStoreError): ...
class QuotaExceeded(UserStoreError): ...
class NegativeUsage(UserStoreError): ...
class DecodeError(UserStoreError): ...
class StorageUnavailable(UserStoreError): ...
class Canceled(UserStoreError): ...
class DeadlineExceeded(UserStoreError): ...

class Unimplemented(UserStoreError, NotImplementedError): ...
