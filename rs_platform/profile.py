# /rs_platform/profile.py
# Technical profile: a discretized fingerprint of the primary video file.
# Enum values are the wire values the remote collection metadata uses.
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

__all__ = [
    "Resolution", "HdrKind", "AudioCodec", "AudioChannels", "MediaType", "MediaSource",
    "TechnicalProfile",
    "resolution_from", "hdr_from", "audio_from", "channels_from", "media_source_from", "media_type_from",
    "snapshot", "equals_profile", "covers", "profile_from_wire", "profile_to_wire",
]


class Resolution(str, Enum):
    UHD_4K = "uhd_4k"
    HD_1080P = "hd_1080p"
    HD_720P = "hd_720p"
    SD_576P = "sd_576p"
    SD_480P = "sd_480p"
    UNKNOWN = "unknown"


class HdrKind(str, Enum):
    DOLBY_VISION = "dolby_vision"
    HDR10 = "hdr10"
    HDR10_PLUS = "hdr10_plus"
    HLG = "hlg"
    NONE = "none"


class AudioCodec(str, Enum):
    DTS_MA = "dts_ma"
    DTS_HR = "dts_hr"
    DTS_X = "dts_x"
    DTS = "dts"
    DOLBY_ATMOS = "dolby_atmos"
    DOLBY_TRUEHD = "dolby_truehd"
    DOLBY_DIGITAL_PLUS = "dolby_digital_plus"
    DOLBY_DIGITAL = "dolby_digital"
    MP2 = "mp2"
    MP3 = "mp3"
    OGG = "ogg"
    WMA = "wma"
    AAC = "aac"
    FLAC = "flac"
    UNKNOWN = "unknown"


class AudioChannels(str, Enum):
    CH1_0 = "1.0"
    CH2_0 = "2.0"
    CH2_1 = "2.1"
    CH3_1 = "3.1"
    CH4_1 = "4.1"
    CH5_1 = "5.1"
    CH6_1 = "6.1"
    CH7_1 = "7.1"
    CH9_1 = "9.1"
    CH10_1 = "10.1"


class MediaType(str, Enum):
    DIGITAL = "digital"
    BLURAY = "bluray"
    UHD_BLURAY = "uhd_bluray"
    DVD = "dvd"
    HDDVD = "hddvd"
    VHS = "vhs"
    LASERDISC = "laserdisc"

    @property
    def wire(self) -> str:
        # the remote has no separate UHD disc type; resolution carries it
        return MediaType.BLURAY.value if self is MediaType.UHD_BLURAY else self.value


class MediaSource(str, Enum):
    UHD_BLURAY = "uhd_bluray"
    BLURAY = "bluray"
    DVD = "dvd"
    HDDVD = "hddvd"
    TV = "tv"
    VHS = "vhs"
    LASERDISC = "laserdisc"
    D_VHS = "d_vhs"
    HDRIP = "hdrip"
    CAM = "cam"
    TS = "ts"
    TC = "tc"
    DVDSCR = "dvdscr"
    R5 = "r5"
    WEBRIP = "webrip"
    WEB_DL = "web_dl"
    STREAM = "stream"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class TechnicalProfile:
    media_type: MediaType = MediaType.DIGITAL
    resolution: Resolution = Resolution.UNKNOWN
    hdr: HdrKind = HdrKind.NONE
    audio: AudioCodec = AudioCodec.UNKNOWN
    audio_channels: Optional[AudioChannels] = None
    is_3d: bool = False


# --- lookup tables ------------------------------------------------------------

_RESOLUTIONS: Dict[str, Resolution] = {
    "4320p": Resolution.UHD_4K, "2160p": Resolution.UHD_4K,
    "1440p": Resolution.HD_1080P, "1080p": Resolution.HD_1080P,
    "720p": Resolution.HD_720P,
    "576p": Resolution.SD_576P, "540p": Resolution.SD_576P,
    "480p": Resolution.SD_480P, "360p": Resolution.SD_480P,
}

_HDR: Dict[str, HdrKind] = {
    "hdr10+": HdrKind.HDR10_PLUS,
    "hdr10": HdrKind.HDR10,
    "hdr": HdrKind.HDR10,
    "dolby vision": HdrKind.DOLBY_VISION,
    "hlg": HdrKind.HLG,
}

_AUDIO: Dict[str, AudioCodec] = {
    "dtshd-ma": AudioCodec.DTS_MA,
    "dtshd-hra": AudioCodec.DTS_HR,
    "dts-x": AudioCodec.DTS_X,
    "atmos": AudioCodec.DOLBY_ATMOS,
    "dts": AudioCodec.DTS,
    "dts-es": AudioCodec.DTS,
    "truehd": AudioCodec.DOLBY_TRUEHD,
    "eac3": AudioCodec.DOLBY_DIGITAL_PLUS,
    "ac3": AudioCodec.DOLBY_DIGITAL,
    "mp2": AudioCodec.MP2,
    "mp3": AudioCodec.MP3,
    "ogg": AudioCodec.OGG,
    "wma": AudioCodec.WMA,
    "aac": AudioCodec.AAC,
    "flac": AudioCodec.FLAC,
}

_CHANNELS: Dict[int, AudioChannels] = {
    1: AudioChannels.CH1_0, 2: AudioChannels.CH2_0, 3: AudioChannels.CH2_1,
    4: AudioChannels.CH3_1, 5: AudioChannels.CH4_1, 6: AudioChannels.CH5_1,
    7: AudioChannels.CH6_1, 8: AudioChannels.CH7_1, 10: AudioChannels.CH9_1,
    11: AudioChannels.CH10_1,
}

# release-name tokens; order matters (uhd before plain bluray, web-dl before web)
_BD = r"(bluray|blueray|bdrip|brrip|dbrip|bd25|bd50|bdmv|blu\-ray)"
_SOURCE_RX: Tuple[Tuple[MediaSource, str], ...] = (
    (MediaSource.UHD_BLURAY, rf"(uhd|ultrahd)[ .\-]?{_BD}"),
    (MediaSource.BLURAY, _BD),
    (MediaSource.HDRIP, r"(hdrip)"),
    (MediaSource.HDDVD, r"(hddvd|hddvdrip)"),
    (MediaSource.DVDSCR, r"(dvdscr)"),
    (MediaSource.DVD, r"(dvd|video_ts|dvdrip|dvdr)"),
    (MediaSource.D_VHS, r"(d\-vhs|dvhs)"),
    (MediaSource.VHS, r"(vhs|vhsrip)"),
    (MediaSource.LASERDISC, r"(laserdisc|ldrip)"),
    (MediaSource.TV, r"(hdtv|pdtv|dsr|dtb|dtt|dttv|dtv|hdtvrip|tvrip|dvbrip)"),
    (MediaSource.CAM, r"(cam)"),
    (MediaSource.TS, r"(ts|telesync|hdts|ht\-ts)"),
    (MediaSource.TC, r"(tc|telecine|hdtc|ht\-tc)"),
    (MediaSource.R5, r"(r5)"),
    (MediaSource.WEBRIP, r"(webrip)"),
    (MediaSource.WEB_DL, r"(web-dl|webdl|web)"),
    (MediaSource.STREAM, r"(stream)"),
)
_START = r"[\/\\ _,.()\[\]-]"
_END = r"([\/\\ _,.()\[\]-]|$)"
_SOURCE_PATTERNS = tuple((src, re.compile(_START + rx + _END, re.I)) for src, rx in _SOURCE_RX)


def _norm(s: Any) -> str:
    return str(s or "").strip().lower()


def resolution_from(video_format: Any) -> Resolution:
    return _RESOLUTIONS.get(_norm(video_format), Resolution.UNKNOWN)


def hdr_from(tag: Any) -> HdrKind:
    t = _norm(tag).replace("_", " ").replace("-", " ")
    if t == "hdr10 plus":
        return HdrKind.HDR10_PLUS
    return _HDR.get(t, HdrKind.NONE)


def audio_from(codec: Any) -> AudioCodec:
    return _AUDIO.get(_norm(codec), AudioCodec.UNKNOWN)


def channels_from(count: Any) -> Optional[AudioChannels]:
    try:
        return _CHANNELS.get(int(count))
    except (TypeError, ValueError):
        return None


def media_source_from(tag: Any) -> MediaSource:
    """Known source names map directly; anything else is scanned as a release name."""
    t = _norm(tag)
    if not t:
        return MediaSource.UNKNOWN
    try:
        return MediaSource(t.replace("-", "_"))
    except ValueError:
        pass
    padded = f" {t}"
    for src, rx in _SOURCE_PATTERNS:
        if rx.search(padded):
            return src
    return MediaSource.UNKNOWN


def media_type_from(source: MediaSource, resolution: Resolution = Resolution.UNKNOWN) -> MediaType:
    if source in (MediaSource.BLURAY, MediaSource.UHD_BLURAY):
        if source is MediaSource.UHD_BLURAY or resolution is Resolution.UHD_4K:
            return MediaType.UHD_BLURAY
        return MediaType.BLURAY
    if source in (MediaSource.DVD, MediaSource.DVDSCR, MediaSource.R5):
        return MediaType.DVD
    if source is MediaSource.HDDVD:
        return MediaType.HDDVD
    if source in (MediaSource.VHS, MediaSource.D_VHS):
        return MediaType.VHS
    if source is MediaSource.LASERDISC:
        return MediaType.LASERDISC
    return MediaType.DIGITAL


def snapshot(item: Any) -> TechnicalProfile:
    """Profile of an item's primary video file (`item.media`); an item without one gets the defaults."""
    mf = getattr(item, "media", None)
    if mf is None:
        return TechnicalProfile()
    resolution = resolution_from(getattr(mf, "video_format", None))
    return TechnicalProfile(
        media_type=media_type_from(media_source_from(getattr(mf, "media_source", None)), resolution),
        resolution=resolution,
        hdr=hdr_from(getattr(mf, "hdr_format", None)),
        audio=audio_from(getattr(mf, "audio_codec", None)),
        audio_channels=channels_from(getattr(mf, "audio_channels", None)),
        is_3d=bool(getattr(mf, "video_3d", False)),
    )


def equals_profile(a: Optional[TechnicalProfile], b: Optional[TechnicalProfile]) -> bool:
    """Field-by-field equality; an unknown/unmapped value on either side is a mismatch."""
    if a is None or b is None:
        return False
    if Resolution.UNKNOWN in (a.resolution, b.resolution):
        return False
    if AudioCodec.UNKNOWN in (a.audio, b.audio):
        return False
    if a.audio_channels is None or b.audio_channels is None:
        return False
    return (
        a.media_type is b.media_type
        and a.resolution is b.resolution
        and a.hdr is b.hdr
        and a.audio is b.audio
        and a.audio_channels is b.audio_channels
        and a.is_3d == b.is_3d
    )


# --- wire translation ---------------------------------------------------------

def _enum_or(cls: Any, value: Any, default: Any) -> Any:
    try:
        return cls(_norm(value))
    except ValueError:
        return default


def profile_from_wire(meta: Optional[Mapping[str, Any]]) -> Optional[TechnicalProfile]:
    """Profile reported in a remote collection row's `metadata`; None when the row has none."""
    if not meta:
        return None
    resolution = _enum_or(Resolution, meta.get("resolution"), Resolution.UNKNOWN)
    media_type = _enum_or(MediaType, meta.get("media_type") or "digital", MediaType.DIGITAL)
    if media_type is MediaType.BLURAY and resolution is Resolution.UHD_4K:
        media_type = MediaType.UHD_BLURAY
    return TechnicalProfile(
        media_type=media_type,
        resolution=resolution,
        hdr=_enum_or(HdrKind, meta.get("hdr") or "none", HdrKind.NONE),
        audio=_enum_or(AudioCodec, meta.get("audio"), AudioCodec.UNKNOWN),
        audio_channels=_enum_or(AudioChannels, meta.get("audio_channels"), None),
        is_3d=bool(meta.get("3d", False)),
    )


def covers(remote: Optional[TechnicalProfile], local: Optional[TechnicalProfile]) -> bool:
    """A remote profile covers a local one when they are equal, or when re-sending the
    local profile would not change anything the remote stores (incomplete local media info)."""
    if remote is None or local is None:
        return False
    return equals_profile(remote, local) or profile_to_wire(remote) == profile_to_wire(local)


def profile_to_wire(p: TechnicalProfile) -> Dict[str, Any]:
    out: Dict[str, Any] = {"media_type": p.media_type.wire, "3d": bool(p.is_3d)}
    if p.resolution is not Resolution.UNKNOWN:
        out["resolution"] = p.resolution.value
    if p.hdr is not HdrKind.NONE:
        out["hdr"] = p.hdr.value
    if p.audio is not AudioCodec.UNKNOWN:
        out["audio"] = p.audio.value
    if p.audio_channels is not None:
        out["audio_channels"] = p.audio_channels.value
    return out
