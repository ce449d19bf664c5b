from .batch_models import CreateOperationInput, UpdateOperationInput

__all__ = ["CreateOperationInput", "UpdateOperationInput"]
