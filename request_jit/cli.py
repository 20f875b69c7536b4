import argparse
import logging
import sys

from request_jit import bootstrap
from request_jit.errors import InvalidDurationError, JitError
from request_jit.settings import apply_args, define_vars

logger = logging.getLogger(__name__)

MIN_HOURS = 1
MAX_HOURS = 24


def _bounded_int(low, high, what):
    def parse(value):
        try:
            number = int(value)
        except ValueError:
            raise argparse.ArgumentTypeError("{} must be a number, got {!r}".format(what, value))
        if not low <= number <= high:
            raise argparse.ArgumentTypeError("{} must be between {} and {}".format(what, low, high))
        return number
    return parse


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="request-jit",
                                     description="Request just-in-time network access to an Azure virtual machine")
    parser.add_argument("--vm", "--machine", dest="vm", required=True, help="Name of the virtual machine")
    parser.add_argument("--port", required=True, type=_bounded_int(1, 65535, "port"),
                        help="Port to open (1-65535)")
    parser.add_argument("--source", help="Allowed source address prefix (default: JIT_SOURCE_PREFIX or *)")
    parser.add_argument("--time", type=_bounded_int(MIN_HOURS, MAX_HOURS, "time"),
                        help="Hours of access (1-24); prompted for when a policy has to be created")
    parser.add_argument("--subscription", help="Only search this subscription id")
    parser.add_argument("--resource-group", "--rg", dest="resource_group", help="Only search this resource group")
    parser.add_argument("--protocol", choices=["*", "TCP", "UDP"], default="*",
                        help="Protocol for a newly created port rule")
    parser.add_argument("--justification", help="Justification recorded with the access request")
    parser.add_argument("--no-install", action="store_true", help="Do not install missing Python modules")
    parser.add_argument("--debug", action="store_true", help="Log API payloads and responses")
    return parser.parse_args(argv)


def setup_logging(level):
    known = isinstance(logging.getLevelName(level), int)
    logging.basicConfig(level=level if known else logging.INFO, format="%(asctime)s %(levelname)s %(message)s", datefmt="%H:%M:%S")
    # the SDK logs every HTTP request at INFO
    logging.getLogger("azure").setLevel(logging.WARNING)
    if not known:
        logger.warning("Unknown log level {}, using INFO".format(level))


def check_hours(hours):
    if not MIN_HOURS <= hours <= MAX_HOURS:
        raise InvalidDurationError("Time must be between {} and {} hours, got {}".format(MIN_HOURS, MAX_HOURS, hours))
    return hours


def prompt_hours(prompt=input):
    try:
        answer = prompt("Time in hours ({}-{}): ".format(MIN_HOURS, MAX_HOURS))
    except (EOFError, KeyboardInterrupt):
        raise InvalidDurationError("No time given")
    try:
        hours = int(answer.strip())
    except ValueError:
        raise InvalidDurationError("Invalid time {!r}".format(answer))
    return check_hours(hours)


def resolve_hours(action, requested, rule, prompt=input):
    from request_jit.policy import USE_EXISTING
    from request_jit.timing import duration_hours

    if action != USE_EXISTING:
        if requested is not None:
            return check_hours(requested)
        return prompt_hours(prompt)

    allowed = duration_hours(rule.get('maxRequestAccessDuration'))
    if requested is None:
        logger.info("Using the policy maximum of {} hours".format(allowed))
        return check_hours(allowed)
    if requested > allowed:
        raise InvalidDurationError("Requested {} hours but the policy allows at most {}".format(requested, allowed))
    return check_hours(requested)


def run(args, data, prompt=input):
    from request_jit import auth, compute, policy
    from request_jit.timing import describe_expiry, expiry_time

    credential = auth.get_credential(data)
    headers    = auth.get_header(credential, data['api_scope'])

    vm = compute.find_vm(credential, args.vm,
                         subscription_id=data['subscription_id'],
                         resource_group=data['resource_group'])

    current = policy.find_policy(headers, data, vm)
    action  = policy.select_action(current, vm.id, args.port)
    rule    = policy.find_port_rule(current, vm.id, args.port)
    hours   = resolve_hours(action, args.time, rule, prompt)

    if action == policy.CREATE_POLICY:
        new_rule = policy.build_port_rule(args.port, hours, data['source_prefix'], args.protocol)
        written = policy.create_policy(headers, data, vm, new_rule)
        policy_name = written.get('name', vm.name)
        location    = vm.location
    else:
        if action == policy.ADD_PORT:
            new_rule = policy.build_port_rule(args.port, hours, data['source_prefix'], args.protocol)
            policy.add_port_rule(headers, data, vm, current, new_rule)
        policy_name = current['name']
        location    = policy.policy_location(current, vm.location)

    end_time = expiry_time(hours)
    response = policy.request_access(headers, data, vm, policy_name, location,
                                     args.port, data['source_prefix'], end_time, args.justification)

    try:
        granted = response['virtualMachines'][0]['ports'][0]['endTimeUtc']
    except (KeyError, IndexError, TypeError):
        granted = end_time
    try:
        expiry = describe_expiry(granted)
    except ValueError:
        expiry = "until {}".format(granted)
    logger.info("Access to {} port {} requested {}".format(vm.name, args.port, expiry))
    return response


def main(argv=None):
    args = parse_args(argv)
    data = apply_args(define_vars(), args)
    setup_logging(data['log_level'])

    try:
        bootstrap.ensure_modules(install_missing=not args.no_install)
        run(args, data)
    except JitError as e:
        logger.critical(str(e))
        sys.exit(1)
    sys.exit(0)
