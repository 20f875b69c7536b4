import os

DEFAULT_MANAGEMENT_ENDPOINT = "https://management.azure.com"
API_VERSION = "2020-01-01"


def define_vars(environ=None):
    """Collect the settings shared by every step of a run.

    Values come from the environment; the command line overrides them
    afterwards. The resulting dict is also what the payload templates see
    as ``data``.
    """
    if environ is None:
        environ = os.environ

    endpoint = environ.get("AZURE_MANAGEMENT_ENDPOINT", DEFAULT_MANAGEMENT_ENDPOINT).rstrip("/")
    data = {
        'tenant_id'          : environ.get("AZURE_TENANT_ID"),
        'client_id'          : environ.get("AZURE_CLIENT_ID"),
        'certificate_path'   : environ.get("AZURE_CERTIFICATE_PATH"),
        'subscription_id'    : environ.get("AZURE_SUBSCRIPTION_ID"),
        'resource_group'     : environ.get("AZURE_RESOURCE_GROUP"),
        'source_prefix'      : environ.get("JIT_SOURCE_PREFIX", "*"),
        'log_level'          : environ.get("JIT_LOG_LEVEL", "INFO").upper(),
        'management_endpoint': endpoint,
        'api_version'        : API_VERSION,
        'api_scope'          : "{}/.default".format(endpoint),
    }
    return data


def apply_args(data, args):
    """Let command line flags win over environment values."""
    overrides = {
        'subscription_id': args.subscription,
        'resource_group' : args.resource_group,
        'source_prefix'  : args.source,
    }
    for key, value in overrides.items():
        if value:
            data[key] = value
    if args.debug:
        data['log_level'] = "DEBUG"
    return data
