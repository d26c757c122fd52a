"""
Per-session state: the chain the caller is currently working on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from thoughtchain.entities import Chain, new_chain


@dataclass
class ChainSession:
    """
    Holds the single current chain for one adapter session.

    Created at process start (or on first load), replaced wholesale on load,
    and only touched under the adapter's one-call-at-a-time guarantee.
    """

    current: Chain = field(default_factory=new_chain)
    client_id: str = "default"

    @classmethod
    def starting_with(cls, chain: Optional[Chain], client_id: str = "default") -> "ChainSession":
        return cls(current=chain or new_chain(), client_id=client_id)

    def swap(self, chain: Chain) -> Chain:
        previous = self.current
        self.current = chain
        return previous
