"""Hardware description of a tracker module, decoded from its OTP feature bytes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

TRACKER_MODEL_BARE_SOM_DEFAULT = 0xFFFF
TRACKER_MODEL_BARE_SOM = 0x0000
TRACKER_MODEL_EVAL = 0x0001
TRACKER_MODEL_TRACKERONE = 0x0002
TRACKER_MODEL_MONITORONE = 0x0003
TRACKER_MODEL_TRACKERM = 0x0004

GNSS_MASK = 0x07
GNSS_SHIFT = 0
GNSS_NEO_M8U = 0b111 << GNSS_SHIFT
GNSS_LC29HBA = 0b110 << GNSS_SHIFT
GNSS_NEO_M9V = 0b101 << GNSS_SHIFT

IMU_MASK = 0x18
IMU_SHIFT = 3
IMU_BMI160 = 0b11 << IMU_SHIFT
IMU_BMI270 = 0b10 << IMU_SHIFT

GPIO_MASK = 0x60
GPIO_SHIFT = 5
GPIO_MCP23S17 = 0b11 << GPIO_SHIFT

WIFI_MASK = 0x60
WIFI_SHIFT = 4
WIFI_ESP32_D2WD = 0b11 << WIFI_SHIFT
WIFI_ESP32_U4WDH = 0b10 << WIFI_SHIFT

THERMISTOR_MASK = 0x08
THERMISTOR_SHIFT = 3
THERMISTOR_SOFT = 0b1 << THERMISTOR_SHIFT

CURRENT_MASK = 0x04
CURRENT_SHIFT = 2
CURRENT_1_5_A = 0b1 << CURRENT_SHIFT


class Platform(Enum):
    """Supported tracker platforms."""

    TRACKER = auto()
    TRACKERM = auto()


class TrackerModel(Enum):
    BARE_SOM_DEFAULT = auto()
    BARE_SOM = auto()
    EVAL = auto()
    TRACKER_ONE = auto()
    MONITOR_ONE = auto()
    TRACKER_M = auto()
    MODEL_INVALID = auto()


class GnssVariant(Enum):
    NEO_M8U = auto()
    LC29HBA = auto()
    NEO_M9V = auto()
    GNSS_INVALID = auto()


class ImuVariant(Enum):
    BMI160 = auto()
    BMI270 = auto()
    IMU_INVALID = auto()


class GpioExpander(Enum):
    MCP23S17 = auto()
    EXPANDER_INVALID = auto()


class CanXcvr(Enum):
    MCP25625 = auto()
    CAN_INVALID = auto()


class Ilim(Enum):
    ILIM_1_5 = auto()
    ILIM_3 = auto()
    ILIM_INVALID = auto()


class ThermistorType(Enum):
    SOFTWARE = auto()
    PMIC = auto()
    TR_INVALID = auto()


class WiFiVariant(Enum):
    ESP32_D2WD = auto()
    ESP32_U4WDH = auto()
    WIFI_INVALID = auto()


class FuelGaugeType(Enum):
    MAX17043 = auto()
    FG_INVALID = auto()


class SensirionType(Enum):
    SHT = auto()
    STS31 = auto()
    SENSE_INVALID = auto()


_MODELS = {
    TRACKER_MODEL_BARE_SOM: TrackerModel.BARE_SOM,
    TRACKER_MODEL_EVAL: TrackerModel.EVAL,
    TRACKER_MODEL_TRACKERONE: TrackerModel.TRACKER_ONE,
    TRACKER_MODEL_MONITORONE: TrackerModel.MONITOR_ONE,
}

_GNSS = {
    GNSS_NEO_M8U: GnssVariant.NEO_M8U,
    GNSS_LC29HBA: GnssVariant.LC29HBA,
    GNSS_NEO_M9V: GnssVariant.NEO_M9V,
}

_IMU = {
    IMU_BMI160: ImuVariant.BMI160,
    IMU_BMI270: ImuVariant.BMI270,
}

_WIFI = {
    WIFI_ESP32_D2WD: WiFiVariant.ESP32_D2WD,
    WIFI_ESP32_U4WDH: WiFiVariant.ESP32_U4WDH,
}


@dataclass(frozen=True)
class EdgePlatform:
    """Peripherals fitted to the module; every field is invalid until decoded."""

    model: TrackerModel = TrackerModel.MODEL_INVALID
    gnss: GnssVariant = GnssVariant.GNSS_INVALID
    imu: ImuVariant = ImuVariant.IMU_INVALID
    gpio_expander: GpioExpander = GpioExpander.EXPANDER_INVALID
    can_interface: CanXcvr = CanXcvr.CAN_INVALID
    current_limit: Ilim = Ilim.ILIM_INVALID
    thermistor: ThermistorType = ThermistorType.TR_INVALID
    wifi: WiFiVariant = WiFiVariant.WIFI_INVALID
    fuel_gauge: FuelGaugeType = FuelGaugeType.FG_INVALID
    sensirion: SensirionType = SensirionType.SENSE_INVALID
    initialized: bool = False

    @classmethod
    def from_hw_info(cls, model: int, features: int,
                     platform: Platform) -> "EdgePlatform":
        """Decode the OTP ``model`` number and ``features`` word for ``platform``.

        The low feature byte holds the CAN, GPIO expander, IMU and GNSS
        fields; the next byte holds the fuel gauge, Wi-Fi, thermistor and
        current-limit fields.
        """
        try:
            platform = Platform(platform)
        except ValueError as exc:
            raise ValueError(f"platform not supported: {platform!r}") from exc
        byte2 = features & 0xFF
        byte3 = (features >> 8) & 0xFF
        imu = _IMU.get(byte2 & IMU_MASK, ImuVariant.IMU_INVALID)

        if platform is Platform.TRACKERM:
            return cls(
                model=TrackerModel.TRACKER_M,
                gnss=GnssVariant.LC29HBA,
                imu=imu,
                fuel_gauge=FuelGaugeType.MAX17043,
                sensirion=SensirionType.STS31,
                initialized=True,
            )

        gpio = (GpioExpander.MCP23S17
                if (byte2 & GPIO_MASK) == GPIO_MCP23S17
                else GpioExpander.EXPANDER_INVALID)
        thermistor = (ThermistorType.SOFTWARE
                      if (byte3 & THERMISTOR_MASK) == THERMISTOR_SOFT
                      else ThermistorType.PMIC)
        current = (Ilim.ILIM_1_5
                   if (byte3 & CURRENT_MASK) == CURRENT_1_5_A
                   else Ilim.ILIM_3)
        # The Sensirion sensor is not described in OTP; it follows the model.
        sensirion = (SensirionType.STS31
                     if model == TRACKER_MODEL_MONITORONE
                     else SensirionType.SENSE_INVALID)
        return cls(
            model=_MODELS.get(model, TrackerModel.BARE_SOM_DEFAULT),
            gnss=_GNSS.get(byte2 & GNSS_MASK, GnssVariant.GNSS_INVALID),
            imu=imu,
            gpio_expander=gpio,
            can_interface=CanXcvr.MCP25625,
            current_limit=current,
            thermistor=thermistor,
            wifi=_WIFI.get(byte3 & WIFI_MASK, WiFiVariant.WIFI_INVALID),
            fuel_gauge=FuelGaugeType.MAX17043,
            sensirion=sensirion,
            initialized=True,
        )