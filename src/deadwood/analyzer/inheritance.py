"""Class hierarchy facts used by the override exemptions."""
from typing import Dict, List, Optional, Set

from .symbols import Symbol


class InheritanceMap:
    """Tracks superclass and interface relationships between classes.

    INHERITANCE MAPPER: a method that matches name and parameter count with a
    method of any ancestor class or implemented interface is reached through
    polymorphic dispatch, which the access graph does not record.
    """

    def __init__(self):
        """Initialize the inheritance map."""
        # class_name -> ordered list of superclass names (nearest first)
        self.superclasses: Dict[str, List[str]] = {}
        # class_name -> directly implemented (or extended, for interfaces) interfaces
        self.interfaces: Dict[str, List[str]] = {}
        # class_name -> declared methods
        self.methods: Dict[str, List[Symbol]] = {}

    def add_class(self, class_name: str, superclasses: List[str], interfaces: List[str]):
        """Register a class with its direct supertypes.

        Args:
            class_name: Fully qualified class name
            superclasses: Direct superclass chain, nearest first
            interfaces: Directly implemented interfaces
        """
        self.superclasses[class_name] = list(superclasses)
        self.interfaces[class_name] = list(interfaces)
        self.methods.setdefault(class_name, [])

    def add_method(self, method: Symbol):
        """Register a method under its owning class."""
        self.methods.setdefault(method.owner, []).append(method)

    def ancestors(self, class_name: str) -> List[str]:
        """All superclasses of a class, nearest first, without interfaces."""
        result: List[str] = []
        visited: Set[str] = {class_name}
        queue = list(self.superclasses.get(class_name, []))
        while queue:
            current = queue.pop(0)
            if current in visited:
                continue
            visited.add(current)
            result.append(current)
            queue.extend(self.superclasses.get(current, []))
        return result

    def all_interfaces(self, class_name: str) -> List[str]:
        """Every interface a class implements, including inherited and super-interfaces."""
        result: List[str] = []
        visited: Set[str] = set()
        queue: List[str] = []
        for owner in [class_name] + self.ancestors(class_name):
            queue.extend(self.interfaces.get(owner, []))
        while queue:
            current = queue.pop(0)
            if current in visited:
                continue
            visited.add(current)
            result.append(current)
            queue.extend(self.interfaces.get(current, []))
        return sorted(result)

    def find_override(self, method: Symbol, superclasses: bool = True,
                      interfaces: bool = True) -> Optional[Symbol]:
        """Find a supertype method with the same name and parameter count.

        Args:
            method: Method to look up
            superclasses: Search the ancestor classes
            interfaces: Search the implemented interfaces

        Returns:
            The first matching supertype method, or None
        """
        candidates: List[str] = []
        if superclasses:
            candidates.extend(self.ancestors(method.owner))
        if interfaces:
            candidates.extend(self.all_interfaces(method.owner))

        arity = len(method.parameters)
        for owner in candidates:
            for declared in self.methods.get(owner, []):
                if declared.name == method.name and len(declared.parameters) == arity:
                    return declared
        return None
