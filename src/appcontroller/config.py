import dataclasses
import typing

from .controllers import CONTROLLERS
from .controllers.service_ingress import DEFAULT_ANNOTATION, DEFAULT_HOST


__all__ = [
    'Config',
]


@dataclasses.dataclass
class Config:
    """Settings of a manager run."""

    # Empty means all namespaces.
    namespaces: typing.List[str] = dataclasses.field(default_factory=list)
    controllers: typing.List[str] = dataclasses.field(
        default_factory=lambda: list(CONTROLLERS)
    )
    app_workers: int = 2
    ingress_workers: int = 5
    ingress_max_retries: int = 10
    ingress_annotation: str = DEFAULT_ANNOTATION
    ingress_host: str = DEFAULT_HOST
    update_status: bool = False
    # Seconds between relists, None picks a default per informer.
    resync_after: float = None

    def __post_init__(self):
        self.namespaces = list(dict.fromkeys(self.namespaces or []))
        self.controllers = list(dict.fromkeys(self.controllers or []))
        if not self.controllers:
            raise ValueError('at least one controller must be enabled')
        unknown = [name for name in self.controllers if name not in CONTROLLERS]
        if unknown:
            raise ValueError(
                f'unknown controllers: {", ".join(unknown)}, '
                f'expected any of: {", ".join(CONTROLLERS)}'
            )
        for field in ('app_workers', 'ingress_workers'):
            if getattr(self, field) < 1:
                raise ValueError(f'{field} must be at least 1')
        if self.ingress_max_retries < 0:
            raise ValueError('ingress_max_retries can not be negative')
        if not self.ingress_annotation:
            raise ValueError('ingress_annotation can not be empty')
        if not self.ingress_host:
            raise ValueError('ingress_host can not be empty')
        if self.resync_after is not None and self.resync_after <= 0:
            raise ValueError('resync_after must be positive')
