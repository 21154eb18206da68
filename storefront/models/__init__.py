from .consent_record import ConsentRecord, ConsentState

__all__ = ["ConsentRecord", "ConsentState"]
