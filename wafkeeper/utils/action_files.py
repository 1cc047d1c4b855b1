"""
Actions file loader.

An actions file is a YAML list, for example:

    - action: block
      policy: /subscriptions/.../frontdoorWebApplicationFirewallPolicies/apple
      max-rules: 3
      paths:
        - ~/ipsets/block-list.ipset
"""
import logging
from pathlib import Path
from typing import List, Union

import yaml

from wafkeeper.core.exceptions import WafKeeperError
from wafkeeper.schemas.actions import ActionSpec
from wafkeeper.utils.ip_parser import load_ipset

logger = logging.getLogger(__name__)


def load_actions_from_path(path: Union[str, Path]) -> List[ActionSpec]:
    """
    Load actions and the networks each one refers to.

    Paths inside the file may start with ~. Networks from all of an action's
    paths are deduplicated together.

    Raises:
        FileNotFoundError: if the actions file or a referenced path is missing
        ParseError: if a referenced file holds an invalid address
        UnsupportedAction: if an entry names an unknown action
        WafKeeperError: if the file is not a list of actions
    """
    file_path = Path(path)
    with file_path.open("r", encoding="utf-8") as f:
        raw_actions = yaml.safe_load(f) or []

    if not isinstance(raw_actions, list):
        raise WafKeeperError(f"actions file {file_path} must contain a list of actions")

    actions = []
    for raw_action in raw_actions:
        entry = ActionSpec.model_validate(raw_action)
        entry.paths = [str(Path(p).expanduser()) for p in entry.paths]
        entry.networks = load_ipset(paths=entry.paths).to_strings()
        logger.debug(f"loaded {len(entry.networks)} networks for {entry.action.value} on {entry.policy}")
        actions.append(entry)

    return actions
