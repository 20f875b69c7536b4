import logging
from collections import namedtuple

from azure.core.exceptions import AzureError, HttpResponseError
from azure.mgmt.compute import ComputeManagementClient
from azure.mgmt.subscription import SubscriptionClient

from request_jit.errors import ComputeError, VmNotFoundError

logger = logging.getLogger(__name__)

VmReference = namedtuple("VmReference", ["name", "id", "resource_group", "location", "subscription_id"])


def resource_group_from_id(resource_id):
    parts = resource_id.split('/')
    lowered = [part.lower() for part in parts]
    return parts[lowered.index('resourcegroups') + 1]


def list_subscription_ids(credential, subscription_id=None):
    if subscription_id:
        return [subscription_id]
    subscription_client = SubscriptionClient(credential)
    try:
        return [sub.subscription_id for sub in subscription_client.subscriptions.list()]
    except AzureError as e:
        raise ComputeError("Unable to list subscriptions: {}".format(e.message))


def _list_vms(compute_client, resource_group=None):
    if resource_group:
        return compute_client.virtual_machines.list(resource_group)
    return compute_client.virtual_machines.list_all()


def find_vm(credential, name, subscription_id=None, resource_group=None):
    for sub_id in list_subscription_ids(credential, subscription_id):
        logger.info("Searching subscription {} for {}".format(sub_id, name))
        compute_client = ComputeManagementClient(credential, sub_id)
        try:
            for vm in _list_vms(compute_client, resource_group):
                if vm.name.lower() == name.lower():
                    reference = VmReference(
                        name=vm.name,
                        id=vm.id,
                        resource_group=resource_group_from_id(vm.id),
                        location=vm.location,
                        subscription_id=sub_id,
                    )
                    logger.info("Found {} in resource group {} ({})".format(vm.name, reference.resource_group, vm.location))
                    return reference
        except HttpResponseError as e:
            logger.warning("Skipping subscription {}: {}".format(sub_id, e.message))
        except AzureError as e:
            raise ComputeError("Unable to list virtual machines in subscription {}: {}".format(sub_id, e.message))

    raise VmNotFoundError("Virtual machine {} not found".format(name))
