from abc import ABC, abstractmethod
from typing import Optional
from .types import DepthFrame, ArmPose

class IDepthSource(ABC):
    @abstractmethod
    def open(self) -> bool:
        pass

    @abstractmethod
    def get_frame(self) -> Optional[DepthFrame]:
        pass

    @abstractmethod
    def close(self):
        pass

class IArmTracker(ABC):
    @abstractmethod
    def process(self, frame: DepthFrame) -> Optional[ArmPose]:
        pass
