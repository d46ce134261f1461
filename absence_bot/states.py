from aiogram.fsm.state import State, StatesGroup


class AbsenceStates(StatesGroup):
    choosing_child = State()
    waiting_for_personal_number = State()
    choosing_day_part = State()
    waiting_for_start_time = State()
    waiting_for_end_time = State()
    confirmation = State()
