from .app import AppController
from .service_ingress import ServiceIngressController

# Controllers by the name they are enabled with.
CONTROLLERS = {
    'app': AppController,
    'service-ingress': ServiceIngressController,
}

__all__ = [
    'AppController',
    'CONTROLLERS',
    'ServiceIngressController',
]
