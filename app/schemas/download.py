from pydantic import BaseModel


class DownloadStatus(BaseModel):
    count:        int
    remaining:    int
    limitReached: bool


class LimitStatus(DownloadStatus):
    limit: int


class DownloadLinkResponse(BaseModel):
    success:        bool = True
    message:        str
    downloadURL:    str
    fileType:       str
    expiresAt:      str
    downloadStatus: DownloadStatus
