from .user import User
from .node import Node, NodeKind
from .share import ShareGrant, ShareLink, Permission

__all__ = ["User", "Node", "NodeKind", "ShareGrant", "ShareLink", "Permission"]
