# app/services/cement/simulator.py
import logging
from typing import Dict, List, Optional, Tuple

from app.core.config import settings
from app.schemas.cement import (
    CementJobInput,
    CementJobState,
    LossZone,
    PumpStage,
    StageSummary,
    TankReading,
)
from app.schemas.hydraulics import ConduitKind
from app.services.cement.fluid_stack import (
    FluidParcel,
    annulus_layers,
    push_into_annulus,
    push_into_string,
    string_layers,
)
from app.services.fluids.hydrostatics import hydrostatic_pressure
from app.services.geometry.resolver import resolve_slices
from app.services.geometry.tvd import TvdSampler
from app.services.geometry.volumes import VolumeMeasure, volume_of
from app.services.hydraulics.engine import calculate_pressure_loss

logger = logging.getLogger(__name__)

START_TOL = 1e-4
END_TOL = 0.9999


class _Replay:
    """Outcome of pumping the schedule up to the cursor."""

    def __init__(self, stage_count: int):
        self.string: List[FluidParcel] = []
        self.annulus: List[FluidParcel] = []
        self.returned: Dict[int, float] = {i: 0.0 for i in range(stage_count)}
        self.lost: Dict[int, float] = {i: 0.0 for i in range(stage_count)}
        self.cement_returns = 0.0

    @property
    def total_returned(self) -> float:
        return sum(self.returned.values())

    @property
    def total_lost(self) -> float:
        return sum(self.lost.values())


class CementJobSimulator:
    """
    Stage cursor and volume balance for one cement job.

    The cursor sits on one stage with a fractional `progress`; pump stages
    deliver `volume · progress`, operations are either pending or complete.
    The fluid stacks, losses and expected tank volume are replayed from the
    start of the schedule after every cursor move.
    """

    def __init__(self, data: CementJobInput, job_id: str = "", tvd: Optional[TvdSampler] = None):
        self.job_id = job_id
        self.data = data
        self.stages = list(data.stages)
        self.tvd = tvd or TvdSampler(data.stations)
        self.slices = resolve_slices(data.annulus_sections, data.string_sections)
        self.string_capacity = volume_of(self.slices, 0.0, data.float_collar_md, VolumeMeasure.STRING_CAPACITY)
        self.annulus_capacity = volume_of(self.slices, 0.0, data.shoe_md, VolumeMeasure.ANNULAR)
        self.increment = settings.CEMENT_VOLUME_INCREMENT_M3

        self.current_stage_index = 0
        self.progress = 0.0
        self.initial_tank_volume = data.initial_tank_volume
        self.current_tank_volume = data.initial_tank_volume
        self.expected_tank_volume = data.initial_tank_volume
        self.is_auto_tracking_tank = True
        self.tank_readings: Dict[int, TankReading] = {}
        self.warnings = self._check_inputs()

        self._replay = _Replay(len(self.stages))
        self._update()

    def _check_inputs(self) -> List[str]:
        warnings = []
        if self.string_capacity <= 0:
            warnings.append("String has no capacity above the float collar; pumped fluid goes straight to the annulus")
        if self.annulus_capacity <= 0:
            warnings.append("Annulus has no capacity above the shoe; every return overflows at surface")
        for zone in self.data.loss_zones:
            if zone.depth_md > self.data.shoe_md:
                warnings.append(f"Loss zone '{zone.name}' at {zone.depth_md:.1f} m is below the shoe and is ignored")
        return warnings

    # Cursor

    @property
    def current_stage(self):
        return self.stages[self.current_stage_index]

    @property
    def is_at_start(self) -> bool:
        return self.current_stage_index == 0 and self.progress <= START_TOL

    @property
    def is_at_end(self) -> bool:
        return self.current_stage_index >= len(self.stages) - 1 and self.progress >= END_TOL

    def next_stage(self) -> None:
        if self.progress < END_TOL:
            self.progress = 1.0
        elif self.current_stage_index < len(self.stages) - 1:
            self._record_reading(manual=not self.is_auto_tracking_tank)
            self.current_stage_index += 1
            self.progress = 0.0
            self.is_auto_tracking_tank = True
        self._update()

    def previous_stage(self) -> None:
        if self.progress > START_TOL:
            self.progress = 0.0
        elif self.current_stage_index > 0:
            self.current_stage_index -= 1
            self.progress = 1.0
        self._update()

    def jump_to_stage(self, index: int) -> bool:
        if index < 0 or index >= len(self.stages):
            return False
        self.current_stage_index = index
        self.progress = 0.0
        self.is_auto_tracking_tank = True
        self._update()
        return True

    def set_progress(self, progress: float) -> None:
        progress = max(0.0, min(1.0, progress))
        if not isinstance(self.current_stage, PumpStage) and progress > 0:
            progress = 1.0
        self.progress = progress
        self._update()

    # Tank

    def record_tank_volume(self, volume: float) -> None:
        """Manual pit reading; overrides tracking until `reset_tank_volume_to_expected`."""
        self.is_auto_tracking_tank = False
        self.current_tank_volume = volume
        self._record_reading(manual=True)
        self._update()

    def reset_tank_volume_to_expected(self) -> None:
        self.is_auto_tracking_tank = True
        self.tank_readings.pop(self.current_stage_index, None)
        self._update()

    def _record_reading(self, manual: bool) -> None:
        self.tank_readings[self.current_stage_index] = TankReading(
            stage_index=self.current_stage_index,
            stage_name=self.current_stage.name,
            volume=self.current_tank_volume,
            manual=manual,
        )

    # Volumes

    def stage_pumped(self, index: int) -> float:
        stage = self.stages[index]
        if not isinstance(stage, PumpStage):
            return 0.0
        if index < self.current_stage_index:
            return stage.volume
        if index == self.current_stage_index:
            return stage.volume * self.progress
        return 0.0

    @property
    def cumulative_pumped_volume(self) -> float:
        return sum(self.stage_pumped(i) for i in range(len(self.stages)))

    @property
    def expected_return(self) -> float:
        return self.cumulative_pumped_volume

    @property
    def total_loss_volume(self) -> float:
        return self._replay.total_lost

    @property
    def actual_returned(self) -> float:
        return max(0.0, self.current_tank_volume - (self.initial_tank_volume - self.cumulative_pumped_volume))

    @property
    def return_ratio(self) -> float:
        pumped = self.cumulative_pumped_volume
        if pumped <= 0:
            return 1.0
        return self.actual_returned / pumped

    @property
    def tank_volume_difference(self) -> float:
        return self.current_tank_volume - self.expected_tank_volume

    def _update(self) -> None:
        predicted = self._run(return_factor=1.0)
        pumped = self.cumulative_pumped_volume
        predicted_returned = pumped - predicted.total_lost
        self.expected_tank_volume = self.initial_tank_volume - (pumped - predicted_returned)

        if self.is_auto_tracking_tank:
            self.current_tank_volume = self.expected_tank_volume
            self._replay = predicted
            return

        # a manual reading rescales what actually reaches the annulus
        factor = self.actual_returned / predicted_returned if predicted_returned > 0 else 1.0
        factor = max(0.0, min(1.0, factor))
        self._replay = self._run(return_factor=factor, use_zones=False)

    def _run(self, return_factor: float, use_zones: bool = True) -> _Replay:
        replay = _Replay(len(self.stages))
        replay.string = [FluidParcel(volume=self.string_capacity, density=self.data.mud_density, name=self.data.mud_name)]
        replay.annulus = [FluidParcel(volume=self.annulus_capacity, density=self.data.mud_density, name=self.data.mud_name)]
        zones = [z for z in self.data.loss_zones if z.is_active and z.depth_md <= self.data.shoe_md]

        for index, stage in enumerate(self.stages):
            pumped = self.stage_pumped(index)
            if pumped <= 1e-3:
                continue
            remaining = pumped
            while remaining > 1e-9:
                volume = min(self.increment, remaining)
                remaining -= volume
                parcel = FluidParcel(
                    volume=volume,
                    density=stage.density,
                    name=stage.name,
                    color=stage.color,
                    is_cement=stage.fluid_type.is_cement,
                )
                for expelled in push_into_string(replay.string, parcel, self.string_capacity):
                    self._return_to_annulus(replay, index, stage, expelled, zones if use_zones else None, return_factor)
        return replay

    def _return_to_annulus(
        self,
        replay: _Replay,
        index: int,
        stage: PumpStage,
        parcel: FluidParcel,
        zones: Optional[List[LossZone]],
        return_factor: float,
    ) -> None:
        if zones is not None:
            if zones and self._zone_fractured(replay, stage, zones):
                replay.lost[index] += parcel.volume
                return
            entering = parcel.volume
        else:
            entering = parcel.volume * return_factor
            replay.lost[index] += parcel.volume - entering
        if entering <= 1e-12:
            return
        replay.returned[index] += entering
        for overflow in push_into_annulus(replay.annulus, parcel.split(entering), self.annulus_capacity):
            if overflow.is_cement:
                replay.cement_returns += overflow.volume

    def _zone_fractured(self, replay: _Replay, stage: PumpStage, zones: List[LossZone]) -> bool:
        layers = annulus_layers(replay.annulus, self.slices, self.data.shoe_md, min_height=0.0)
        for zone in zones:
            tvd = zone.tvd if zone.tvd is not None else self.tvd.tvd(zone.depth_md)
            pressure = hydrostatic_pressure(layers, zone.depth_md, self.tvd)
            if stage.pump_rate and stage.rheology is not None:
                pressure += calculate_pressure_loss(
                    self.slices, layers, stage.rheology, stage.density, stage.pump_rate,
                    0.0, zone.depth_md, ConduitKind.ANNULUS,
                ).total_pressure_loss
            if pressure > zone.threshold(tvd):
                logger.debug(f"Loss zone '{zone.name}' fractured at {pressure:.1f} kPa")
                return True
        return False

    # Reporting

    def fluid_layers(self) -> Tuple[list, list]:
        return (
            string_layers(self._replay.string, self.slices, self.data.float_collar_md),
            annulus_layers(self._replay.annulus, self.slices, self.data.shoe_md),
        )

    def stage_summaries(self) -> List[StageSummary]:
        summaries = []
        for index, stage in enumerate(self.stages):
            is_operation = not isinstance(stage, PumpStage)
            complete = index < self.current_stage_index or (
                index == self.current_stage_index and self.progress >= END_TOL
            )
            reading = self.tank_readings.get(index)
            summaries.append(StageSummary(
                index=index,
                name=stage.name,
                kind=stage.kind,
                is_operation=is_operation,
                volume=0.0 if is_operation else stage.volume,
                pumped=self.stage_pumped(index),
                returned=self._replay.returned[index],
                lost=self._replay.lost[index],
                complete=complete,
                tank_reading=reading.volume if reading else None,
            ))
        return summaries

    def state(self) -> CementJobState:
        string_stack, annulus_stack = self.fluid_layers()
        return CementJobState(
            job_id=self.job_id,
            name=self.data.name,
            current_stage_index=self.current_stage_index,
            current_stage_name=self.current_stage.name,
            progress=self.progress,
            is_at_start=self.is_at_start,
            is_at_end=self.is_at_end,
            cumulative_pumped_volume=self.cumulative_pumped_volume,
            expected_return=self.expected_return,
            expected_tank_volume=self.expected_tank_volume,
            current_tank_volume=self.current_tank_volume,
            is_auto_tracking_tank=self.is_auto_tracking_tank,
            actual_returned=self.actual_returned,
            return_ratio=self.return_ratio,
            tank_volume_difference=self.tank_volume_difference,
            total_loss_volume=self.total_loss_volume,
            cement_returns_volume=self._replay.cement_returns,
            string_layers=string_stack,
            annulus_layers=annulus_stack,
            stages=self.stage_summaries(),
            tank_readings=[self.tank_readings[i] for i in sorted(self.tank_readings)],
            warnings=list(self.warnings),
        )
