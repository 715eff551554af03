"""App Inventor to Android Studio project converter."""

__version__ = "0.1.0"
