import importlib
import importlib.util
import logging
import subprocess
import sys

from request_jit.errors import BootstrapError

logger = logging.getLogger(__name__)

# import name -> distribution name on the package index
REQUIRED_MODULES = {
    "azure.identity":          "azure-identity",
    "azure.mgmt.compute":      "azure-mgmt-compute",
    "azure.mgmt.subscription": "azure-mgmt-subscription",
    "requests":                "requests",
    "jinja2":                  "jinja2",
    "dateutil":                "python-dateutil",
}


def _module_present(name):
    try:
        return importlib.util.find_spec(name) is not None
    except ModuleNotFoundError:
        # parent package (e.g. "azure") is not installed at all
        return False


def missing_modules(required=REQUIRED_MODULES):
    missing = []
    for module, distribution in required.items():
        if not _module_present(module) and distribution not in missing:
            missing.append(distribution)
    return missing


def install(distributions):
    command = [sys.executable, "-m", "pip", "install"] + list(distributions)
    logger.debug("Running {}".format(" ".join(command)))
    try:
        subprocess.check_call(command)
    except (OSError, subprocess.CalledProcessError) as e:
        raise BootstrapError("Unable to install {}: {}".format(", ".join(distributions), e))
    importlib.invalidate_caches()


def ensure_modules(required=REQUIRED_MODULES, install_missing=True):
    missing = missing_modules(required)
    if not missing:
        logger.debug("All required modules are present")
        return

    if not install_missing:
        raise BootstrapError("Missing required modules: {}".format(", ".join(missing)))

    logger.warning("Missing required modules, installing: {}".format(", ".join(missing)))
    install(missing)

    still_missing = missing_modules(required)
    if still_missing:
        raise BootstrapError("Modules still missing after install: {}".format(", ".join(still_missing)))
