"""Configuration for ndassemble

Values come, lowest priority first, from the packaged ``ndassemble.yaml``,
YAML/JSON files found on ``paths`` and ``NDASSEMBLE_*`` environment
variables.  Use ``get`` to read and ``set`` to override, globally or inside
a ``with`` block.
"""

import ast
import os
import sys
import threading
from collections.abc import Mapping

import yaml

no_default = "__no_default__"

PREFIX = "NDASSEMBLE_"

paths = [
    os.getenv("NDASSEMBLE_ROOT_CONFIG", "/etc/ndassemble"),
    os.path.join(sys.prefix, "etc", "ndassemble"),
    os.path.join(os.path.expanduser("~"), ".config", "ndassemble"),
]

if "NDASSEMBLE_CONFIG" in os.environ:
    paths.append(os.environ["NDASSEMBLE_CONFIG"])

global_config = config = {}

config_lock = threading.Lock()

defaults = []


def canonical_name(k, config):
    """Return the spelling of ``k`` already used in ``config``

    ``foo-bar`` and ``foo_bar`` name the same key; whichever was set first
    wins.  Unknown keys are returned as given.
    """
    try:
        if k in config:
            return k
    except TypeError:
        return k

    altk = k.replace("_", "-") if "_" in k else k.replace("-", "_")

    if altk in config:
        return altk

    return k


def update(old, new, priority="new"):
    """Merge ``new`` into the nested dictionary ``old`` in place

    Parameters
    ----------
    priority: string {'old', 'new'}
        Which side wins when both define a leaf value.

    Examples
    --------
    >>> a = {'x': 1, 'y': {'a': 2}}
    >>> b = {'x': 2, 'y': {'b': 3}}
    >>> update(a, b)
    {'x': 2, 'y': {'a': 2, 'b': 3}}
    """
    for k, v in new.items():
        k = canonical_name(k, old)

        if isinstance(v, Mapping):
            if k not in old or old[k] is None or not isinstance(old[k], dict):
                old[k] = {}
            update(old[k], v, priority=priority)
        else:
            if priority == "new" or k not in old:
                old[k] = v

    return old


def merge(*dicts):
    """Merge nested dictionaries, later ones taking precedence

    >>> merge({'x': 1, 'y': {'a': 2}}, {'y': {'b': 3}})
    {'x': 1, 'y': {'a': 2, 'b': 3}}
    """
    result = {}
    for d in dicts:
        update(result, d)
    return result


def collect_yaml(paths=paths):
    """Load every yaml/json file in ``paths``

    Directories are expanded to the config files they contain, in sorted
    order.  Unreadable locations are skipped.
    """
    file_paths = []
    for path in paths:
        if not os.path.exists(path):
            continue
        if os.path.isdir(path):
            try:
                file_paths.extend(
                    sorted(
                        os.path.join(path, p)
                        for p in os.listdir(path)
                        if os.path.splitext(p)[1].lower() in (".json", ".yaml", ".yml")
                    )
                )
            except OSError:
                pass
        else:
            file_paths.append(path)

    configs = []
    for path in file_paths:
        try:
            with open(path) as f:
                configs.append(yaml.safe_load(f.read()) or {})
        except OSError:
            pass

    return configs


def collect_env(env=None):
    """Collect config from ``NDASSEMBLE_*`` environment variables

    ``NDASSEMBLE_NESTED__CHECK_SIBLINGS=False`` becomes
    ``{"nested": {"check_siblings": False}}``: the key is lower-cased,
    ``__`` marks nesting and the value goes through ``ast.literal_eval``
    when it parses as a literal.
    """
    if env is None:
        env = os.environ

    d = {}
    for name, value in env.items():
        if name.startswith(PREFIX) and name not in (
            "NDASSEMBLE_CONFIG",
            "NDASSEMBLE_ROOT_CONFIG",
        ):
            varname = name[len(PREFIX) :].lower().replace("__", ".")
            try:
                d[varname] = ast.literal_eval(value)
            except (SyntaxError, ValueError):
                d[varname] = value

    result = {}
    set(d, config=result)
    return result


class set:
    """Set configuration values, temporarily when used as a context manager

    Parameters
    ----------
    arg : mapping or None, optional
        Dotted keys to values.
    **kwargs :
        More values; ``__`` in a keyword stands for ``.``.

    Examples
    --------
    >>> import ndassemble
    >>> with ndassemble.config.set({'nested.check-siblings': False}):
    ...     pass

    >>> with ndassemble.config.set(nested__check_siblings=False):
    ...     pass
    """

    def __init__(self, arg=None, config=config, lock=config_lock, **kwargs):
        with lock:
            self.config = config
            self._record = []

            if arg is not None:
                for key, value in arg.items():
                    self._assign(key.split("."), value, config)
            for key, value in kwargs.items():
                self._assign(key.replace("__", ".").split("."), value, config)

    def __enter__(self):
        return self.config

    def __exit__(self, type, value, traceback):
        for op, path, value in reversed(self._record):
            d = self.config
            if op == "replace":
                for key in path[:-1]:
                    d = d.setdefault(key, {})
                d[path[-1]] = value
            else:  # insert
                for key in path[:-1]:
                    try:
                        d = d[key]
                    except KeyError:
                        break
                else:
                    d.pop(path[-1], None)

    def _assign(self, keys, value, d, path=(), record=True):
        key = canonical_name(keys[0], d)
        path = path + (key,)

        if len(keys) == 1:
            if record:
                if key in d:
                    self._record.append(("replace", path, d[key]))
                else:
                    self._record.append(("insert", path, None))
            d[key] = value
        else:
            if key not in d:
                if record:
                    self._record.append(("insert", path, None))
                d[key] = {}
                # everything below a fresh key goes away with it
                record = False
            self._assign(keys[1:], value, d[key], path, record=record)


def collect(paths=paths, env=None):
    """Merge the configuration found in ``paths`` and ``env``"""
    if env is None:
        env = os.environ

    configs = collect_yaml(paths=paths)
    configs.append(collect_env(env=env))

    return merge(*configs)


def refresh(config=config, defaults=defaults, **kwargs):
    """Rebuild ``config`` from the registered defaults, files and environment

    See Also
    --------
    ndassemble.config.collect: for parameters
    """
    config.clear()

    for d in defaults:
        update(config, d, priority="old")

    update(config, collect(**kwargs))


def get(key, default=no_default, config=config, override_with=None):
    """Read a value, using '.' for nested access

    ``override_with`` is returned as is when it is not None, which lets
    keyword arguments default to the configuration.

    >>> get('nested.check-siblings', config={'nested': {'check-siblings': True}})
    True
    >>> get('block.missing', 'trailing', config={})
    'trailing'
    """
    if override_with is not None:
        return override_with
    result = config
    for k in key.split("."):
        k = canonical_name(k, result)
        try:
            result = result[k]
        except (TypeError, IndexError, KeyError):
            if default is not no_default:
                return default
            raise
    return result


def update_defaults(new, config=config, defaults=defaults):
    """Register ``new`` as defaults and fill in values missing from ``config``"""
    defaults.append(new)
    update(config, new, priority="old")


def _initialize():
    fn = os.path.join(os.path.dirname(__file__), "ndassemble.yaml")

    with open(fn) as f:
        _defaults = yaml.safe_load(f)

    update_defaults(_defaults)


refresh()
_initialize()
