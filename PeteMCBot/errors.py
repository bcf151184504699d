"""
Error types raised inside command handling.

Every one of these is caught by the command dispatcher and turned into a
reply; none is allowed to reach the Discord layer.
"""


class PeteMCError(Exception):
    """Base class for bot errors"""
    pass


class InvalidAddress(PeteMCError):
    """Raised when a server address string cannot be parsed"""
    pass


class ProbeError(PeteMCError):
    """Base class for status probe failures"""
    pass


class ConnectFailed(ProbeError):
    """Connection refused, host unreachable or DNS failure"""
    pass


class TimedOut(ProbeError):
    """Probe deadline exceeded (connect or handshake)"""
    pass


class ProtocolError(ProbeError):
    """Connected, but the status response was malformed"""
    pass


class StoreError(PeteMCError):
    """Config store read/write failure"""
    pass


class LaunchError(PeteMCError):
    """Start command could not be spawned"""
    pass
