from __future__ import annotations

from datetime import datetime, timezone

from medibook.application.dto.profile import ProfileImageUpload, UpdateProfileInput
from medibook.application.ports.profile_image_port import ProfileImagePort
from medibook.application.ports.profile_port import ProfilePort
from medibook.domain.entities.user import Profile, UserView
from medibook.domain.exceptions import NotAuthenticatedError
from medibook.domain.services.profiles import profile_table_for_role


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_image_path(*, user_id: str, filename: str, now: datetime) -> str:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    return f"profiles/{user_id}-{int(now.timestamp() * 1000)}.{ext}"


class UpdateProfileUseCase:
    def __init__(
        self,
        *,
        profile_port: ProfilePort,
        image_port: ProfileImagePort,
        image_bucket: str = "profile-images",
    ):
        self._profile_port = profile_port
        self._image_port = image_port
        self._image_bucket = image_bucket

    async def execute(self, *, user: UserView, command: UpdateProfileInput) -> Profile:
        if user.role is None:
            raise NotAuthenticatedError("Invalid user role.")

        full_name = command.full_name.strip()
        if not full_name:
            raise ValueError("full_name is required.")

        now = utcnow()
        updates: dict = {
            "full_name": full_name,
            "updated_at": now.isoformat(),
        }
        if command.profile_image is not None:
            updates["profile_image_url"] = await self._upload_image(
                user_id=user.id,
                image=command.profile_image,
                now=now,
            )
        if user.role == "doctor" and command.specialization is not None:
            updates["specialization"] = command.specialization.strip()

        return await self._profile_port.update_profile(
            table=profile_table_for_role(user.role),
            identity_id=user.id,
            fields=updates,
        )

    async def _upload_image(self, *, user_id: str, image: ProfileImageUpload, now: datetime) -> str:
        path = build_image_path(user_id=user_id, filename=image.filename, now=now)
        return await self._image_port.upload(
            bucket=self._image_bucket,
            path=path,
            content=image.content,
            content_type=image.content_type,
        )
