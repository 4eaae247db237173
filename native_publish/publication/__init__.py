"""Publication metadata module.

This module handles:
- The immutable publication descriptor and its JSON / POM renderings
- The optional signing stage
"""

from native_publish.publication.descriptor import (
    PublicationDescriptor,
    build_descriptor,
)

__all__ = ["PublicationDescriptor", "build_descriptor"]
