"""SmartPark - multi-floor parking slot allocation and billing"""

__version__ = "1.0.0"
