import json
import logging

import requests
from jinja2 import Environment, PackageLoader

from request_jit.errors import JitApiError
from request_jit.timing import iso_duration

logger = logging.getLogger(__name__)

CREATE_POLICY = "create_policy"
ADD_PORT      = "add_port"
USE_EXISTING  = "use_existing"

POLICIES_URI = ("{endpoint}/subscriptions/{subscription}/resourceGroups/{rg}"
                "/providers/Microsoft.Security/jitNetworkAccessPolicies?api-version={api_version}")
POLICY_URI = ("{endpoint}/subscriptions/{subscription}/resourceGroups/{rg}"
              "/providers/Microsoft.Security/locations/{location}/jitNetworkAccessPolicies/{name}?api-version={api_version}")
INITIATE_URI = ("{endpoint}/subscriptions/{subscription}/resourceGroups/{rg}"
                "/providers/Microsoft.Security/locations/{location}/jitNetworkAccessPolicies/{name}/initiate?api-version={api_version}")

templates = Environment(loader=PackageLoader("request_jit", "templates"), autoescape=False)


def render(template_name, data):
    payload = json.loads(templates.get_template(template_name).render(data=data))
    logger.debug("{} payload: {}".format(template_name, payload))
    return payload


def _call(method, uri, headers, payload=None):
    try:
        response = requests.request(method, uri, headers=headers, json=payload)
    except requests.RequestException as e:
        raise JitApiError("{} {} failed: {}".format(method, uri, e))
    if not response.ok:
        raise JitApiError("{} {} failed".format(method, uri), response.status_code, response.text)
    logger.debug("{} {} -> {}".format(method, uri, response.status_code))
    if not response.content:
        return {}
    return response.json()


def policy_uri(data, vm, name, location):
    return POLICY_URI.format(endpoint=data['management_endpoint'],
                             subscription=vm.subscription_id,
                             rg=vm.resource_group,
                             location=location,
                             name=name,
                             api_version=data['api_version'])


def policy_location(policy, default=None):
    """Security Center location of a policy, taken from its resource id."""
    parts = policy.get('id', '').split('/')
    lowered = [part.lower() for part in parts]
    if 'locations' in lowered:
        return parts[lowered.index('locations') + 1]
    return policy.get('location', default)


# Policy inspector

def list_policies(headers, data, vm):
    uri = POLICIES_URI.format(endpoint=data['management_endpoint'],
                              subscription=vm.subscription_id,
                              rg=vm.resource_group,
                              api_version=data['api_version'])
    policies = []
    while uri:
        page = _call("GET", uri, headers)
        policies.extend(page.get('value', []))
        uri = page.get('nextLink')
    return policies


def _policy_vm(policy, vm_id):
    for entry in policy.get('properties', {}).get('virtualMachines', []):
        if entry.get('id', '').lower() == vm_id.lower():
            return entry
    return None


def find_policy(headers, data, vm):
    for policy in list_policies(headers, data, vm):
        if _policy_vm(policy, vm.id) is not None:
            logger.info("Found JIT policy {} for {}".format(policy.get('name'), vm.name))
            return policy
    logger.info("No JIT policy covers {}".format(vm.name))
    return None


def find_port_rule(policy, vm_id, port):
    if policy is None:
        return None
    entry = _policy_vm(policy, vm_id)
    if entry is None:
        return None
    for rule in entry.get('ports', []):
        if int(rule.get('number', 0)) == int(port):
            return rule
    return None


def select_action(policy, vm_id, port):
    if policy is None:
        return CREATE_POLICY
    if find_port_rule(policy, vm_id, port) is None:
        return ADD_PORT
    return USE_EXISTING


# Policy writer

def build_port_rule(port, hours, source_prefix="*", protocol="*"):
    return {
        "number":                     int(port),
        "protocol":                   protocol,
        "allowedSourceAddressPrefix": source_prefix,
        "maxRequestAccessDuration":   iso_duration(hours),
    }


def _port_entry(rule):
    entry = {
        "number":                   int(rule['number']),
        "protocol":                 rule.get('protocol', '*'),
        "maxRequestAccessDuration": rule.get('maxRequestAccessDuration'),
    }
    if rule.get('allowedSourceAddressPrefixes'):
        entry['allowedSourceAddressPrefixes'] = rule['allowedSourceAddressPrefixes']
    else:
        entry['allowedSourceAddressPrefix'] = rule.get('allowedSourceAddressPrefix') or '*'
    return entry


def _vm_entry(entry):
    vm_entry = {
        "id":    entry['id'],
        "ports": [_port_entry(rule) for rule in entry.get('ports', [])],
    }
    if entry.get('publicIPAddress'):
        vm_entry['publicIPAddress'] = entry['publicIPAddress']
    return vm_entry


def _put_policy(headers, data, vm, name, location, kind, virtual_machines):
    payload = render("enable_jit.json", dict(data, policy_kind=kind, virtual_machines=virtual_machines))
    return _call("PUT", policy_uri(data, vm, name, location), headers, payload)


def create_policy(headers, data, vm, rule):
    logger.info("Creating JIT policy {} for port {}".format(vm.name, rule['number']))
    virtual_machines = [{"id": vm.id, "ports": [_port_entry(rule)]}]
    return _put_policy(headers, data, vm, vm.name, vm.location, "Basic", virtual_machines)


def add_port_rule(headers, data, vm, policy, rule):
    logger.info("Adding port {} to JIT policy {}".format(rule['number'], policy['name']))
    virtual_machines = [_vm_entry(entry) for entry in policy.get('properties', {}).get('virtualMachines', [])]
    for entry in virtual_machines:
        if entry['id'].lower() == vm.id.lower():
            entry['ports'].append(_port_entry(rule))
            break
    else:
        virtual_machines.append({"id": vm.id, "ports": [_port_entry(rule)]})
    return _put_policy(headers, data, vm, policy['name'], policy_location(policy, vm.location),
                       policy.get('kind', 'Basic'), virtual_machines)


# Access requester

def request_access(headers, data, vm, policy_name, location, port, source_prefix, end_time, justification=None):
    logger.info("Requesting access to {} port {} from {} until {}".format(vm.name, port, source_prefix, end_time))
    payload = render("initiate_jit.json", dict(data,
                                               vm_id=vm.id,
                                               port=port,
                                               source_prefix=source_prefix,
                                               end_time=end_time,
                                               justification=justification))
    uri = INITIATE_URI.format(endpoint=data['management_endpoint'],
                              subscription=vm.subscription_id,
                              rg=vm.resource_group,
                              location=location,
                              name=policy_name,
                              api_version=data['api_version'])
    response = _call("POST", uri, headers, payload)
    logger.debug(response)
    return response
