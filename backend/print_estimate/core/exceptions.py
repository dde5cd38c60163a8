# core/exceptions.py

class PrintEstimateError(Exception):
    """Base class for all custom exceptions in this application."""
    pass

class ConfigurationError(PrintEstimateError):
    """Exception raised for errors in configuration loading or validation."""
    pass

class FileFormatError(PrintEstimateError):
    """Exception raised for unsupported input file formats."""
    pass

class MeshDecodeError(PrintEstimateError):
    """Exception raised when input bytes cannot be interpreted as a triangle mesh."""
    pass

class InvalidParameterError(PrintEstimateError):
    """Exception raised for a process parameter that cannot be used at all."""
    pass

class MaterialNotFoundError(PrintEstimateError):
    """Exception raised when a specified material preset ID cannot be found for a medium."""
    pass
