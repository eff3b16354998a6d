import pytest

from school_config import Configuration, is_saturday, normalize_config


def test_defaults_when_settings_missing():
    config = normalize_config(None)
    assert config.days == ('Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat')
    assert config.periods_per_day == 6
    assert config.saturday_periods == 6
    assert config.grades == (1, 2, 3)
    assert config.sections(1) == ('1', '2', '3', '4')
    assert config.sections(2) == ('1', '2', '3', '4')
    assert config.sections(3) == ('1', '2', '3')
    assert config.weekly_slots == 5 * 6 + 6


def test_saturday_periods_apply_to_default_week():
    config = normalize_config({'periodsPerDay': 5, 'saturdayPeriods': 3})
    assert config.periods_for('Sat') == 3
    assert config.weekly_slots == 5 * 5 + 3


def test_sections_cannot_be_changed_after_normalization():
    config = normalize_config({'grades': [1], 'sectionsByGrade': {1: 2}})
    with pytest.raises(TypeError):
        config.sections_by_grade[1] = ('X',)
    with pytest.raises(TypeError):
        config.sections_by_grade[2] = ('1',)
    assert config.sections(1) == ('1', '2')


def test_invalid_values_are_replaced_not_rejected():
    config = normalize_config({
        'days': [],
        'periodsPerDay': 'abc',
        'saturdayPeriods': -2,
        'grades': 'all',
        'sectionsByGrade': 'nope',
    })
    assert config.days == ('Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat')
    assert config.periods_per_day == 6
    assert config.saturday_periods == 6
    assert config.grades == (1, 2, 3)
    assert len(config.sections(3)) == 3


def test_non_dict_settings_fall_back_to_defaults():
    assert normalize_config(['not', 'a', 'dict']) == normalize_config({})


def test_saturday_override():
    config = normalize_config({
        'days': ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat'],
        'dailyPeriods': 6,
        'saturdayPeriods': 4,
        'grades': [1],
    })
    assert config.periods_for('Mon') == 6
    assert config.periods_for('Sat') == 4
    assert config.weekly_slots == 5 * 6 + 4


def test_saturday_defaults_to_weekday_count():
    config = normalize_config({'periodsPerDay': 5, 'days': ['Mon', 'Saturday']})
    assert config.saturday_periods == 5
    assert is_saturday('Saturday')
    assert is_saturday('土曜')
    assert not is_saturday('Sun')


def test_saturday_can_be_zero():
    config = normalize_config({'days': ['Mon', 'Sat'], 'periodsPerDay': 4, 'saturdayPeriods': 0})
    assert config.weekly_slots == 4


def test_sections_by_grade_accepts_names_counts_and_string_keys():
    config = normalize_config({
        'grades': [1, 2, 3],
        'sectionsByGrade': {'1': ['A', 'B'], 2: 3},
        'grade3Classes': 2,
    })
    assert config.sections(1) == ('A', 'B')
    assert config.sections(2) == ('1', '2', '3')
    assert config.sections(3) == ('1', '2')
    assert config.class_keys == [(1, 'A'), (1, 'B'), (2, '1'), (2, '2'), (2, '3'), (3, '1'), (3, '2')]


def test_duplicate_days_and_grades_are_dropped():
    config = normalize_config({'days': ['Mon', 'Mon', ' Tue '], 'grades': [2, '2', 1]})
    assert config.days == ('Mon', 'Tue')
    assert config.grades == (2, 1)


def test_existing_configuration_is_returned_unchanged():
    config = normalize_config({'grades': [4]})
    assert normalize_config(config) is config
    assert isinstance(config, Configuration)
    assert config.sections(4) == ('1', '2', '3', '4')


def test_to_dict_uses_api_keys():
    data = normalize_config({'grades': [1], 'sectionsByGrade': {1: ['A']}}).to_dict()
    assert data['sectionsByGrade'] == {'1': ['A']}
    assert data['periodsPerDay'] == 6
