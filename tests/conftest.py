import json
from unittest.mock import MagicMock

import pytest

from request_jit.compute import VmReference
from request_jit.settings import define_vars

VM_ID = ("/subscriptions/00000000-0000-0000-0000-000000000001/resourceGroups/rg-web"
         "/providers/Microsoft.Compute/virtualMachines/web01")
OTHER_VM_ID = ("/subscriptions/00000000-0000-0000-0000-000000000001/resourceGroups/rg-web"
               "/providers/Microsoft.Compute/virtualMachines/web02")


@pytest.fixture
def data():
    return define_vars({})


@pytest.fixture
def headers():
    return {"Authorization": "Bearer token", "Content-Type": "application/json"}


@pytest.fixture
def vm():
    return VmReference(name="web01",
                       id=VM_ID,
                       resource_group="rg-web",
                       location="westeurope",
                       subscription_id="00000000-0000-0000-0000-000000000001")


@pytest.fixture
def existing_policy():
    return {
        "id": ("/subscriptions/00000000-0000-0000-0000-000000000001/resourceGroups/rg-web"
               "/providers/Microsoft.Security/locations/westeurope/jitNetworkAccessPolicies/default"),
        "name": "default",
        "kind": "Basic",
        "location": "westeurope",
        "properties": {
            "virtualMachines": [
                {
                    "id": VM_ID.upper(),
                    "ports": [
                        {"number": 22, "protocol": "*", "allowedSourceAddressPrefix": "*",
                         "maxRequestAccessDuration": "PT3H"},
                    ],
                },
                {
                    "id": OTHER_VM_ID,
                    "ports": [
                        {"number": 3389, "protocol": "TCP",
                         "allowedSourceAddressPrefixes": ["10.0.0.0/8", "192.168.0.0/16"],
                         "maxRequestAccessDuration": "PT1H"},
                    ],
                },
            ],
            "provisioningState": "Succeeded",
        },
    }


def fake_response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.content = json.dumps(body).encode() if body is not None else b""
    response.text = response.content.decode()
    response.json.return_value = body
    return response
