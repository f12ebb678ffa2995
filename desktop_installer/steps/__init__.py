from .step_10_detect_hardware import DetectHardwareStep
from .step_20_prepare_system import PrepareSystemStep
from .step_30_install_packages import InstallPackagesStep
from .step_40_install_nvidia import InstallNvidiaStep
from .step_55_enable_services import EnableServicesStep
from .step_60_apply_dotfiles import ApplyDotfilesStep
from .step_90_summary import SummaryStep

__all__ = [
    "DetectHardwareStep",
    "PrepareSystemStep",
    "InstallPackagesStep",
    "InstallNvidiaStep",
    "EnableServicesStep",
    "ApplyDotfilesStep",
    "SummaryStep",
]
