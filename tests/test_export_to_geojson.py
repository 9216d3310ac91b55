"""Tests for allotment exports."""
import json
import os
from datetime import datetime
import geopandas as gpd
import pytest
from allotment.diagnostics_merger import AssignmentDiagnosticsMerger
from models.entities import Centre, Student, StudentCategory
from visualization.export_to_geojson import AllotmentExporter


class TestAllotmentExporter:
    def setup_method(self):
        self.centres = [Centre("centre_1", 26.27, 73.03, 2), Centre("centre_2", 26.29, 73.05, 1)]
        self.students = [
            Student("student_1", 26.271, 73.031, StudentCategory.PWD),
            Student("student_2", 26.281, 73.041, StudentCategory.FEMALE),
            Student("student_3", 26.291, 73.051, StudentCategory.MALE),
        ]
        self.merger = AssignmentDiagnosticsMerger()
        self.views = self.merger.merge(
            self.students, self.centres,
            {"student_1": "centre_1", "student_2": "centre_2"},
            {"student_1": {"centre_1": 75.0}},
        )

    def test_diagnostics_report_filename(self, tmp_path):
        exporter = AllotmentExporter(str(tmp_path))
        path = exporter.export_diagnostics_report({'rows': [1, 2]}, timestamp=datetime(2026, 10, 19, 8, 30, 5, 120000))

        assert os.path.basename(path) == "allotment_diagnostics_2026-10-19T08-30-05-120000.json"
        with open(path, encoding='utf-8') as f:
            assert json.load(f) == {'rows': [1, 2]}

    def test_allotment_geojson(self, tmp_path):
        exporter = AllotmentExporter(str(tmp_path))
        gdf = exporter.prepare_allotment_geojson(self.views, self.centres)

        assert len(gdf) == 5
        assert gdf.crs.to_epsg() == 4326
        students = gdf[gdf['feature_type'] == 'student']
        assert students['status'].tolist() == ['assigned', 'assigned', 'unassigned']
        assert students.iloc[0]['travel_time_s'] == 75.0
        assert students.iloc[0].geometry.x == pytest.approx(73.031)

        path = exporter.export_allotment_geojson()
        assert len(gpd.read_file(path)) == 5

    def test_export_requires_prepared_data(self, tmp_path):
        exporter = AllotmentExporter(str(tmp_path))
        with pytest.raises(ValueError):
            exporter.export_allotment_geojson()
        with pytest.raises(ValueError):
            exporter.prepare_allotment_geojson([], [])

    def test_summary_csv(self, tmp_path):
        exporter = AllotmentExporter(str(tmp_path))
        summary_df = self.merger.summarize(self.views, self.centres)
        csv_df = exporter.prepare_summary_csv(summary_df, self.views)

        assert csv_df['centre_id'].tolist() == ['centre_1', 'centre_2', 'UNASSIGNED', 'TOTAL']
        assert csv_df.iloc[2]['assigned'] == 1
        assert csv_df.iloc[3]['assigned'] == 2
        assert csv_df.iloc[3]['max_capacity'] == 3
        assert os.path.exists(exporter.export_summary_csv())
