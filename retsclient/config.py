import json
import logging
import os
from typing import Any
from typing import Dict
from typing import Optional

from retsclient.protocol.types import RETSConfig

"""
Configuration lookup for RETS connections.  Connection parameters can
be given directly, through environment variables prefixed with
``RETS_`` or through a JSON or YAML config file.
"""

## Keys in the config file sections, after stripping the "rets_" prefix
_SECTION_ALIASES = {
    "pass": "password",
    "user": "username",
}


def config_section(config, section="default"):
    if section in config and "inherits" in config[section]:
        ret = config_section(config, config[section]["inherits"])
    else:
        ret = {}
    if section in config:
        ret.update(config[section])
    return ret


def read_config(fn, interactive_error=False):
    if not fn:
        cfgdir = f"{os.environ.get('HOME', '/')}/.config/"
        for config_file in (
            f"{cfgdir}/rets/rets.conf",
            f"{cfgdir}/rets/rets.yaml",
            f"{cfgdir}/rets/rets.json",
            f"{cfgdir}/rets.conf",
            "/etc/rets.conf",
            "/etc/rets/rets.conf",
        ):
            cfg = read_config(config_file)
            if cfg:
                return cfg
        return None

    try:
        try:
            with open(fn, "rb") as config_file:
                return json.load(config_file)
        except json.decoder.JSONDecodeError:
            ## Late import, wrapped in try/except.  yaml is external module,
            ## and not included in the requirements as for now.
            try:
                import yaml

                try:
                    with open(fn, "rb") as config_file:
                        return yaml.load(config_file, yaml.SafeLoader)
                except yaml.YAMLError:
                    logging.error(
                        f"config file {fn} exists but is neither valid json nor yaml.  Check the syntax."
                    )
            except ImportError:
                logging.error(
                    f"config file {fn} exists but is not valid json, and pyyaml is not installed."
                )

    except FileNotFoundError:
        logging.info("no config file found")
    except ValueError:
        if interactive_error:
            logging.error(
                "error in config file.  Be aware that the interactive configuration will ignore and overwrite the current broken config file",
                exc_info=True,
            )
        else:
            logging.error("error in config file.  It will be ignored", exc_info=True)
    return {}


def _from_environment() -> Dict[str, str]:
    conf = {}
    for conf_key in (
        x for x in os.environ if x.startswith("RETS_") and not x.startswith("RETS_CONFIG")
    ):
        conf[conf_key[5:].lower()] = os.environ[conf_key]
    return conf


def _from_section(section: Dict[str, Any]) -> Dict[str, Any]:
    conn_params = {}
    for k in section:
        if k.startswith("rets_") and section[k]:
            key = k[5:]
            conn_params[_SECTION_ALIASES.get(key, key)] = section[k]
    return conn_params


def get_config(
    check_config_file: bool = True,
    config_file: Optional[str] = None,
    config_section_name: Optional[str] = None,
    environment: bool = True,
    **config_data,
) -> Optional[RETSConfig]:
    """
    Find the connection parameters, looking in this order:

    * The keyword arguments given
    * Environment variables prepended with ``RETS_``, like ``RETS_URL``,
      ``RETS_USERNAME``, ``RETS_PASSWORD``, ``RETS_USER_AGENT_PASSWORD``.
    * The config file given, or ``RETS_CONFIG_FILE``, or the first one found
      of ``~/.config/rets/rets.conf`` and friends.  The section is taken
      from ``config_section_name``, ``RETS_CONFIG_SECTION`` or ``default``,
      and keys are prefixed with ``rets_`` (``rets_url``, ``rets_user``,
      ``rets_pass``, ...).

    Returns:
        RETSConfig, or None if nothing was found
    """
    if config_data:
        return RETSConfig.from_dict(config_data)

    if environment:
        conf = _from_environment()
        if conf:
            return RETSConfig.from_dict(conf)
        if not config_file:
            config_file = os.environ.get("RETS_CONFIG_FILE")
        if not config_section_name:
            config_section_name = os.environ.get("RETS_CONFIG_SECTION")

    if check_config_file:
        cfg = read_config(config_file)
        if cfg:
            section = config_section(cfg, config_section_name or "default")
            conn_params = _from_section(section)
            if conn_params:
                return RETSConfig.from_dict(conn_params)
    return None
