class ScripterError(Exception):
    """Base exception for scripting operations"""
    pass


class ServerConnectionError(ScripterError):
    """Raised when the server cannot be reached or rejects the credentials"""
    pass


class MetadataError(ScripterError):
    """Raised when the catalog cannot be enumerated"""
    pass


class ScriptingError(ScripterError):
    """Raised when a single object cannot be rendered"""
    pass


class ExportCancelled(ScripterError):
    """Raised when a running export is cancelled by its caller"""
    pass
