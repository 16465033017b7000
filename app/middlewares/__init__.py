from .request_id_middleware import *

__all__ = ["RequestIDMiddleware"]
