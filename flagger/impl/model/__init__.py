from .entity import *
from .feature import *
from .gates import *
