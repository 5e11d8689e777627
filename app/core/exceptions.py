from fastapi import HTTPException, status


class AppException:
    """HTTP errors of the notification admin API; rendered as {"message": ...} by app.main."""

    @staticmethod
    def raise_400(message: str = "Bad Request"):
        """Invalid settings, e.g. an empty sending window."""
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)

    @staticmethod
    def raise_401(message: str = "Unauthorized"):
        """Missing or unusable bearer token."""
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)

    @staticmethod
    def raise_404(message: str = "Not Found"):
        """Unknown entry, or one owned by another school."""
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message)

    @staticmethod
    def raise_409(message: str = "Conflict"):
        """The entry's current status does not allow the requested change."""
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=message)
