from dataclasses import dataclass


@dataclass(frozen=True)
class PropertySnapshot:
    id: str
    title: str
    agent_id: str
    image: str = ""
    agent_name: str = ""
