from .data_template import *
from .seed_db import *
from .seed_large_dataset import *
