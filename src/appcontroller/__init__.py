# The types a user of the controllers cares about are available in the top
# level package.

from .exceptions import *  # noqa: F403 public API
from .resources import *  # noqa: F403 public API
from .cache import *  # noqa: F403 public API
from .controller import *  # noqa: F403 public API
from .client import *  # noqa: F403 public API
from .config import Config
from .scheme import GroupVersionKind, Scheme, default_scheme
from .recorder import EVENT_NORMAL, EVENT_WARNING, EventRecorder
from .controllers import AppController, ServiceIngressController
from .manager import Manager
