"""Tests for Prometheus metrics."""

from posecontrol.metrics import MetricsCollector


class TestMetricsCollector:
    def test_record_gesture(self):
        m = MetricsCollector()
        m.record_gesture("knock")
        m.record_gesture("knock")
        m.record_gesture("wave")
        assert m.gesture_counts == {"knock": 2, "wave": 1}

    def test_record_frame(self):
        m = MetricsCollector()
        m.record_frame(0.005)
        m.record_frame(0.010)
        assert m.frames_total == 2

    def test_render_prometheus_format(self):
        m = MetricsCollector()
        m.record_gesture("slap")
        m.record_mode("window_drag")
        m.record_command("move_window")
        m.record_frame(0.005)
        m.record_rejected()
        m.set_connections(3)

        output = m.render()
        assert 'posecontrol_gestures_total{gesture="slap"} 1' in output
        assert 'posecontrol_mode_transitions_total{mode="window_drag"} 1' in output
        assert 'posecontrol_desktop_commands_total{command="move_window"} 1' in output
        assert "posecontrol_frames_total 1" in output
        assert "posecontrol_rejected_frames_total 1" in output
        assert "posecontrol_active_connections 3" in output
        assert "# HELP" in output
        assert "# TYPE posecontrol_tick_latency_seconds histogram" in output

    def test_histogram_is_cumulative(self):
        m = MetricsCollector()
        m.record_frame(0.0015)
        m.record_frame(0.004)
        m.record_frame(0.5)
        output = m.render()
        assert 'posecontrol_tick_latency_seconds_bucket{le="0.001"} 0' in output
        assert 'posecontrol_tick_latency_seconds_bucket{le="0.002"} 1' in output
        assert 'posecontrol_tick_latency_seconds_bucket{le="0.005"} 2' in output
        assert 'posecontrol_tick_latency_seconds_bucket{le="0.1"} 2' in output
        assert 'posecontrol_tick_latency_seconds_bucket{le="+Inf"} 3' in output
        assert "posecontrol_tick_latency_seconds_count 3" in output
