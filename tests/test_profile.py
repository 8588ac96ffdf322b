# ReelSync test scripts
from __future__ import annotations

from rs_platform.library import LocalItem, MediaFileInfo
from rs_platform.profile import (
    AudioChannels,
    AudioCodec,
    HdrKind,
    MediaSource,
    MediaType,
    Resolution,
    TechnicalProfile,
    covers,
    equals_profile,
    media_source_from,
    media_type_from,
    profile_from_wire,
    profile_to_wire,
    snapshot,
)


def _item(**media) -> LocalItem:
    return LocalItem("movie", "Blade Runner", ids={"tmdb": 78}, media=MediaFileInfo(**media))


def test_snapshot_maps_every_field() -> None:
    p = snapshot(_item(
        video_format="2160p",
        video_3d=False,
        hdr_format="Dolby Vision",
        audio_codec="TrueHD",
        audio_channels=8,
        media_source="Blade.Runner.1982.UHD.BluRay.2160p.TrueHD.Atmos.7.1-GRP",
    ))
    assert p == TechnicalProfile(
        media_type=MediaType.UHD_BLURAY,
        resolution=Resolution.UHD_4K,
        hdr=HdrKind.DOLBY_VISION,
        audio=AudioCodec.DOLBY_TRUEHD,
        audio_channels=AudioChannels.CH7_1,
        is_3d=False,
    )


def test_snapshot_without_media_is_the_default_profile() -> None:
    assert snapshot(LocalItem("movie", "Nothing")) == TechnicalProfile()


def test_media_source_from_names_and_release_names() -> None:
    assert media_source_from("bluray") is MediaSource.BLURAY
    assert media_source_from("WEB-DL") is MediaSource.WEB_DL
    assert media_source_from("Movie.2001.DVDRip.XviD") is MediaSource.DVD
    assert media_source_from("Movie.2001.1080p.WEB.H264") is MediaSource.WEB_DL
    assert media_source_from("Movie.2001.HDTV.x264") is MediaSource.TV
    assert media_source_from("") is MediaSource.UNKNOWN
    assert media_source_from("home video") is MediaSource.UNKNOWN


def test_media_type_from_source() -> None:
    assert media_type_from(MediaSource.BLURAY, Resolution.HD_1080P) is MediaType.BLURAY
    assert media_type_from(MediaSource.BLURAY, Resolution.UHD_4K) is MediaType.UHD_BLURAY
    assert media_type_from(MediaSource.DVDSCR) is MediaType.DVD
    assert media_type_from(MediaSource.D_VHS) is MediaType.VHS
    assert media_type_from(MediaSource.WEBRIP) is MediaType.DIGITAL
    assert media_type_from(MediaSource.UNKNOWN) is MediaType.DIGITAL


def test_equals_profile_is_strict_about_unknowns() -> None:
    full = TechnicalProfile(MediaType.BLURAY, Resolution.HD_1080P, HdrKind.NONE, AudioCodec.DTS_MA, AudioChannels.CH5_1)
    assert equals_profile(full, full)
    assert not equals_profile(full, TechnicalProfile(MediaType.DVD, Resolution.HD_1080P, HdrKind.NONE, AudioCodec.DTS_MA, AudioChannels.CH5_1))
    assert not equals_profile(full, TechnicalProfile(MediaType.BLURAY, Resolution.HD_1080P, HdrKind.NONE, AudioCodec.DTS_MA, AudioChannels.CH7_1))
    unknown = TechnicalProfile()
    assert not equals_profile(unknown, unknown)
    assert not equals_profile(full, None)


def test_wire_projection_omits_unmapped_fields() -> None:
    assert profile_to_wire(TechnicalProfile()) == {"media_type": "digital", "3d": False}
    wire = profile_to_wire(TechnicalProfile(
        MediaType.UHD_BLURAY, Resolution.UHD_4K, HdrKind.HDR10, AudioCodec.DOLBY_ATMOS, AudioChannels.CH7_1, True,
    ))
    assert wire == {
        "media_type": "bluray",
        "resolution": "uhd_4k",
        "hdr": "hdr10",
        "audio": "dolby_atmos",
        "audio_channels": "7.1",
        "3d": True,
    }


def test_profile_from_wire() -> None:
    assert profile_from_wire(None) is None
    assert profile_from_wire({}) is None
    p = profile_from_wire({
        "media_type": "bluray",
        "resolution": "uhd_4k",
        "hdr": "dolby_vision",
        "audio": "dts_x",
        "audio_channels": "7.1",
        "3d": False,
    })
    assert p is not None
    assert p.media_type is MediaType.UHD_BLURAY
    assert p.audio_channels is AudioChannels.CH7_1
    odd = profile_from_wire({"media_type": "betamax", "resolution": "8k"})
    assert odd is not None
    assert odd.media_type is MediaType.DIGITAL
    assert odd.resolution is Resolution.UNKNOWN


def test_covers_upgraded_source_is_not_covered() -> None:
    remote = profile_from_wire({"media_type": "dvd", "resolution": "sd_480p", "audio": "dolby_digital", "audio_channels": "5.1"})
    dvd = snapshot(_item(video_format="480p", audio_codec="ac3", audio_channels=6, media_source="dvd"))
    bluray = snapshot(_item(video_format="1080p", audio_codec="ac3", audio_channels=6, media_source="bluray"))
    assert covers(remote, dvd)
    assert not covers(remote, bluray)
    assert not covers(None, dvd)


def test_covers_incomplete_profile_when_wire_is_unchanged() -> None:
    remote = profile_from_wire({"media_type": "digital", "resolution": "hd_1080p"})
    local = snapshot(_item(video_format="1080p"))
    assert not equals_profile(remote, local)
    assert covers(remote, local)
