# Author: Futhark1393
# Description: HashXtract (HX): streaming multi-algorithm file hashing.

__version__ = "1.2.0"
