import pytest
from pathlib import Path
from unittest.mock import patch, MagicMock
import ffmpeg
from PIL import Image

from video_pipeline.exceptions import MediaOperationError
from video_pipeline.services.media import (
    FFMPEG_CRF,
    FFMPEG_PRESET,
    QUALITIES,
    VideoQuality,
    extract_audio,
    extract_thumbnail,
    transcode_video,
)


@pytest.fixture
def input_video(tmp_path: Path) -> Path:
    path = tmp_path / "input.mp4"
    path.write_bytes(b"not really a video")
    return path


@pytest.fixture
def mock_ffmpeg_methods():
    with patch("ffmpeg.input") as mock_input, \
         patch("ffmpeg.output") as mock_output, \
         patch("ffmpeg.run") as mock_run:
        mock_stream = MagicMock()
        mock_input.return_value = mock_stream
        mock_output.return_value = mock_stream
        yield {"input": mock_input, "output": mock_output, "run": mock_run, "stream": mock_stream}


def test_qualities_are_720_then_480():
    assert [q.value for q in QUALITIES] == ["720p", "480p"]
    assert VideoQuality("480p").height == 480


@pytest.mark.asyncio
async def test_transcode_video_builds_expected_command(mock_ffmpeg_methods, input_video: Path, tmp_path: Path):
    output = tmp_path / "out_720p.mp4"

    result = await transcode_video(input_video, output, "720p")

    assert result == output
    mock_ffmpeg_methods["input"].assert_called_once_with(str(input_video))
    mock_ffmpeg_methods["output"].assert_called_once_with(
        mock_ffmpeg_methods["stream"],
        str(output),
        vf="scale=-2:720",
        vcodec="libx264",
        preset=FFMPEG_PRESET,
        crf=FFMPEG_CRF,
        acodec="aac",
    )
    assert mock_ffmpeg_methods["run"].call_args.kwargs["overwrite_output"] is True


@pytest.mark.asyncio
async def test_transcode_video_wraps_ffmpeg_error(mock_ffmpeg_methods, input_video: Path, tmp_path: Path):
    mock_ffmpeg_methods["run"].side_effect = ffmpeg.Error("ffmpeg", b"", b"Invalid data found when processing input")

    with pytest.raises(MediaOperationError, match="Failed to transcode video to 480p: Invalid data found"):
        await transcode_video(input_video, tmp_path / "out.mp4", VideoQuality.SD)


@pytest.mark.asyncio
async def test_transcode_video_missing_input(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        await transcode_video(tmp_path / "missing.mp4", tmp_path / "out.mp4", "720p")


@pytest.mark.asyncio
async def test_extract_thumbnail_writes_progressive_jpeg(mock_ffmpeg_methods, input_video: Path, tmp_path: Path, temp_dir: Path):
    frame_paths = []

    def fake_output(stream, path, **kwargs):
        frame_paths.append(path)
        return mock_ffmpeg_methods["stream"]

    def fake_run(stream, **kwargs):
        Image.new("RGB", (640, 360), "red").save(frame_paths[-1], "JPEG")

    mock_ffmpeg_methods["output"].side_effect = fake_output
    mock_ffmpeg_methods["run"].side_effect = fake_run
    output = tmp_path / "thumb.jpg"

    data = await extract_thumbnail(input_video, output, width=640, seek_time=1)

    assert data == output.read_bytes()
    mock_ffmpeg_methods["input"].assert_called_once_with(str(input_video), ss=1)
    kwargs = mock_ffmpeg_methods["output"].call_args.kwargs
    assert kwargs["vf"] == "scale=640:-1"
    assert kwargs["vframes"] == 1
    with Image.open(output) as image:
        assert image.format == "JPEG"
        assert image.info.get("progressive")
    # The intermediate frame is gone
    assert not Path(frame_paths[0]).exists()
    assert list(temp_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_extract_thumbnail_failure_cleans_frame(mock_ffmpeg_methods, input_video: Path, tmp_path: Path, temp_dir: Path):
    mock_ffmpeg_methods["run"].side_effect = ffmpeg.Error("ffmpeg", b"", b"no frame")

    with pytest.raises(MediaOperationError, match="Frame extraction failed: no frame"):
        await extract_thumbnail(input_video, tmp_path / "thumb.jpg")
    assert list(temp_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_extract_audio_mono_16k(mock_ffmpeg_methods, input_video: Path, tmp_path: Path):
    audio = tmp_path / "audio.wav"

    assert await extract_audio(input_video, audio) == audio
    kwargs = mock_ffmpeg_methods["output"].call_args.kwargs
    assert kwargs["ac"] == 1
    assert kwargs["ar"] == 16000
