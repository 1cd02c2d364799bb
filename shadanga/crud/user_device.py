from sqlalchemy.orm import Session
from typing import List, Optional

from shadanga.crud.base import CRUDBase
from shadanga.models.user_device import UserDevice
from shadanga.schemas.download import DeviceRegister
from shadanga.utils.clock import utcnow

class CRUDUserDevice(CRUDBase[UserDevice, DeviceRegister, DeviceRegister]):
    def get_by_user_and_device(self, db: Session, *, user_id: int, device_id: str) -> Optional[UserDevice]:
        return (
            db.query(self.model)
            .filter(self.model.user_id == user_id, self.model.device_id == device_id)
            .first()
        )

    def get_active(self, db: Session, *, user_id: int, device_id: str) -> Optional[UserDevice]:
        return (
            db.query(self.model)
            .filter(
                self.model.user_id == user_id,
                self.model.device_id == device_id,
                self.model.is_active == True,
            )
            .first()
        )

    def get_active_by_user(self, db: Session, *, user_id: int) -> List[UserDevice]:
        return (
            db.query(self.model)
            .filter(self.model.user_id == user_id, self.model.is_active == True)
            .order_by(self.model.last_active_at.desc())
            .all()
        )

    def upsert(self, db: Session, *, user_id: int, obj_in: DeviceRegister) -> UserDevice:
        device = self.get_by_user_and_device(db, user_id=user_id, device_id=obj_in.device_id)
        if device is None:
            return self.create(
                db,
                obj_in={
                    "user_id": user_id,
                    "device_id": obj_in.device_id,
                    "device_name": obj_in.device_name,
                    "platform": obj_in.platform,
                    "is_active": True,
                },
            )
        if obj_in.device_name is not None:
            device.device_name = obj_in.device_name
        if obj_in.platform is not None:
            device.platform = obj_in.platform
        device.is_active = True
        device.last_active_at = utcnow()
        db.add(device)
        db.commit()
        db.refresh(device)
        return device

    def touch(self, db: Session, *, device: UserDevice) -> None:
        device.last_active_at = utcnow()
        db.add(device)
        db.commit()

user_device = CRUDUserDevice(UserDevice)
