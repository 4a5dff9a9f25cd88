"""Opacity effects for slot rows and the status badge."""

from __future__ import annotations

from PySide6.QtCore import QAbstractAnimation, QEasingCurve, QPropertyAnimation, QSequentialAnimationGroup
from PySide6.QtWidgets import QGraphicsOpacityEffect, QWidget

_PULSE_ATTR = "_sdeck_pulse"


def _effect_for(widget: QWidget) -> QGraphicsOpacityEffect:
    effect = widget.graphicsEffect()
    if not isinstance(effect, QGraphicsOpacityEffect):
        effect = QGraphicsOpacityEffect(widget)
        effect.setOpacity(1.0)
        widget.setGraphicsEffect(effect)
    return effect


def _opacity_step(widget: QWidget, start: float, end: float, duration_ms: int, curve: QEasingCurve.Type) -> QPropertyAnimation:
    step = QPropertyAnimation(_effect_for(widget), b"opacity", widget)
    step.setStartValue(start)
    step.setEndValue(end)
    step.setDuration(duration_ms)
    step.setEasingCurve(curve)
    return step


def fade_in(widget: QWidget, duration_ms: int = 220) -> None:
    # Parented to the widget, so Qt keeps it alive until it finishes.
    step = _opacity_step(widget, 0.0, 1.0, duration_ms, QEasingCurve.Type.OutCubic)
    step.start(QAbstractAnimation.DeletionPolicy.DeleteWhenStopped)


def pulse_opacity(widget: QWidget, low: float = 0.55, period_ms: int = 950) -> None:
    stop_pulse(widget)
    half = period_ms // 2
    group = QSequentialAnimationGroup(widget)
    group.addAnimation(_opacity_step(widget, 1.0, low, half, QEasingCurve.Type.InOutSine))
    group.addAnimation(_opacity_step(widget, low, 1.0, half, QEasingCurve.Type.InOutSine))
    group.setLoopCount(-1)
    setattr(widget, _PULSE_ATTR, group)
    group.start()


def stop_pulse(widget: QWidget) -> None:
    group = getattr(widget, _PULSE_ATTR, None)
    if group is not None:
        group.stop()
        group.deleteLater()
        setattr(widget, _PULSE_ATTR, None)
    effect = widget.graphicsEffect()
    if isinstance(effect, QGraphicsOpacityEffect):
        effect.setOpacity(1.0)
