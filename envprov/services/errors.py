class EnvprovException(Exception):
    exit_code: int = 1


class InvalidArgument(EnvprovException):
    exit_code = 1


class UnknownEnvironment(EnvprovException):
    exit_code = 2


class ProvisionFailure(EnvprovException):
    exit_code = 3


class ListingFailure(EnvprovException):
    # Shares the provider-failure exit code with ProvisionFailure
    exit_code = 3


class ProviderTimeout(EnvprovException):
    exit_code = 4


class ConfigurationError(EnvprovException):
    exit_code = 5
