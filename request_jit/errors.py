class JitError(Exception):
    pass


class BootstrapError(JitError):
    pass


class AuthenticationError(JitError):
    pass


class VmNotFoundError(JitError):
    pass


class InvalidDurationError(JitError):
    pass


class JitApiError(JitError):

    def __init__(self, message, status_code=None, text=""):
        super().__init__(message)
        self.status_code = status_code
        self.text = text

    def __str__(self):
        message = super().__str__()
        if self.status_code is not None:
            message = "{} (HTTP {}): {}".format(message, self.status_code, self.text)
        return message


class ComputeError(JitError):
    pass
