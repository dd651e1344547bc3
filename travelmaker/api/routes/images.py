"""Per-location cover images stored as data URLs."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel

from travelmaker.api.deps import get_location_images
from travelmaker.db.repositories import ImageValidationError, LocationImageStore, StorageError

router = APIRouter(prefix="/images", tags=["images"])


class LocationImageResponse(BaseModel):
    location: str
    data_url: str


@router.get("", response_model=dict[str, str])
async def list_images(
    images: Annotated[LocationImageStore, Depends(get_location_images)],
) -> dict[str, str]:
    return images.all()


@router.put("/{location}", response_model=LocationImageResponse)
async def upload_image(
    location: str,
    request: Request,
    images: Annotated[LocationImageStore, Depends(get_location_images)],
) -> LocationImageResponse:
    """Store the raw request body as the location's image.

    The Content-Type header supplies the MIME type.

    Raises:
        HTTPException: 415 for non-image types, 413 over the size cap,
            503 if the store rejects the write
    """
    mime_type = request.headers.get("content-type", "").split(";")[0].strip()
    content = await request.body()
    try:
        data_url = images.put(location, content, mime_type)
    except ImageValidationError as e:
        code = (
            status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
            if not mime_type.startswith("image/")
            else status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        )
        raise HTTPException(status_code=code, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return LocationImageResponse(location=location, data_url=data_url)


@router.delete("/{location}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_image(
    location: str,
    images: Annotated[LocationImageStore, Depends(get_location_images)],
) -> Response:
    if not images.remove(location):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No image for location")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
