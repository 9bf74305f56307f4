"""Base exporter interface"""
import abc


class BaseExporter(abc.ABC):
    """Abstract base class for metric exporters driven by an external scheduler"""

    @abc.abstractmethod
    def publish(self) -> None:
        """Run one export cycle"""
        pass

    @abc.abstractmethod
    def is_healthy(self) -> bool:
        """Check if exporter is healthy"""
        pass

    def shutdown(self) -> None:
        """Release exporter resources"""
        pass
