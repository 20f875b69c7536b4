import logging
from datetime import datetime

from azure.core.exceptions import ClientAuthenticationError
from azure.identity import CertificateCredential, DefaultAzureCredential

from request_jit.errors import AuthenticationError

logger = logging.getLogger(__name__)


def get_credential(data):
    if data.get('tenant_id') and data.get('client_id') and data.get('certificate_path'):
        logger.debug("Using certificate credential for client {}".format(data['client_id']))
        try:
            return CertificateCredential(data['tenant_id'], data['client_id'], data['certificate_path'])
        except (OSError, ValueError) as e:
            raise AuthenticationError("Unable to get a credential from Azure: {}".format(e))

    logger.debug("No service principal configured, falling back to the default credential chain")
    return DefaultAzureCredential(exclude_interactive_browser_credential=False)


def get_header(credential, api_scope):
    try:
        access_token = credential.get_token(api_scope)
    except ClientAuthenticationError as e:
        raise AuthenticationError("Unsuccessful login: {}".format(e.message))

    logger.debug("Successful login")
    logger.debug("Access token expires on {}".format(datetime.fromtimestamp(access_token.expires_on).isoformat()))
    headers = {
        "Authorization": "Bearer {}".format(access_token.token),
        "Content-Type":  "application/json"
    }
    return headers
