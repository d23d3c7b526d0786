"""Settings resolution for dovpn.

Settings come from CLI flags, environment variables, the user config file
(``~/.dovpn/config.yaml``) and built-in defaults, in that order.
"""

from dovpn.config.loader import load_settings, load_user_config, resolve_config_dir

__all__ = ["load_settings", "load_user_config", "resolve_config_dir"]
