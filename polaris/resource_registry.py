from importlib.metadata import entry_points

from .resource import EchoResource, FilesystemResource

registry = {
    "static": FilesystemResource,
    "echo": EchoResource,
}

for ep in entry_points(group="polaris.resources"):
    registry[ep.name] = ep.load()
