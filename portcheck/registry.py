"""What each issue kind means, for `portcheck explain`."""

ISSUE_INFO: dict[str, dict[str, str]] = {
    "collision": {
        "severity": "error",
        "description": "Two or more services publish the same host port and at least one binds all interfaces.",
        "when": "A host port is bound more than once and one of the binds is 0.0.0.0 (or has no host IP).",
        "fix": "Give one of the services a different host port, or bind each to a distinct specific IP.",
    },
    "potential_collision": {
        "severity": "warning",
        "description": "The same host port is bound several times, each on a specific interface.",
        "when": "A host port is bound more than once, only with explicit host IPs.",
        "fix": "Fine if the interfaces really differ (multi-homing). Otherwise change a host port.",
    },
    "privileged": {
        "severity": "warning",
        "description": "Host ports below 1024 need root privileges (or rootless tweaks) to bind.",
        "when": "A binding publishes a host port between 1 and 1023.",
        "fix": "Publish on a port >= 1024 and put a proxy in front, or run with the needed privileges.",
    },
    "common_port": {
        "severity": "info",
        "description": "The host port is usually taken by a well-known system service.",
        "when": "A wildcard bind targets a port like 22, 80, 443, 3306, 5432, 6379 or 27017.",
        "fix": "Check nothing on the host already listens there, or publish on another port.",
    },
    "profile_collision": {
        "severity": "error",
        "description": "Services active under the selected compose profiles claim the same host port.",
        "when": "Scanning with --profile and two active services publish the same host port.",
        "fix": "Move one service to a different port or keep the clashing profiles apart.",
    },
    "parse_error": {
        "severity": "warning",
        "description": "A compose file could not be read or is not a valid compose document.",
        "when": "Invalid YAML, unreadable file, or a top level / services section that is not a mapping.",
        "fix": "Validate the file with `docker compose config`.",
    },
    "already_in_use": {
        "severity": "error",
        "description": "A running container already holds a host port this compose setup needs.",
        "when": "Scanning with --runtime and docker ps shows another container on the port.",
        "fix": "Stop the other container or change the host port.",
    },
}
