"""Shared fixtures: small physical files exercising each supported construct."""

from __future__ import annotations

import pytest

HEADER = """\
ISO-10303-21;
HEADER;
FILE_DESCRIPTION(('ViewDefinition [CoordinationView]'),'2;1');
FILE_NAME('sample.ifc','2024-01-01T00:00:00',('tester'),('ifclite'),'','','');
FILE_SCHEMA(('{schema}'));
ENDSEC;
DATA;
"""

FOOTER = """\
ENDSEC;
END-ISO-10303-21;
"""


def _make_ifc(data: str, schema: str = "IFC4") -> str:
    return HEADER.format(schema=schema) + data.strip() + "\n" + FOOTER


# Project -> site, with one proxy contained in the site.
_SPATIAL = """\
#1=IFCPROJECT('0YvctVUKr0kugbFTf53O9L',$,'Demo',$,$,$,$,$,$);
#2=IFCSITE('1YvctVUKr0kugbFTf53O9L',$,'Site',$,$,$,$,$,.ELEMENT.,$,$,$,$,$);
#3=IFCRELAGGREGATES('2YvctVUKr0kugbFTf53O9L',$,$,$,#1,(#2));
#9=IFCRELCONTAINEDINSPATIALSTRUCTURE('3YvctVUKr0kugbFTf53O9L',$,$,$,(#8),#2);
"""

TRIANGLE = """\
#5=IFCCARTESIANPOINTLIST3D(((0.,0.,0.),(1.,0.,0.),(0.,1.,0.)));
#6=IFCTRIANGULATEDFACESET(#5,$,.T.,((1,2,3)),$);
"""

RECTANGLE_EXTRUSION = """\
#20=IFCCARTESIANPOINT((0.,0.,0.));
#21=IFCAXIS2PLACEMENT2D(#20,$);
#22=IFCRECTANGLEPROFILEDEF(.AREA.,$,#21,2.,1.);
#23=IFCAXIS2PLACEMENT3D(#20,$,$);
#24=IFCDIRECTION((0.,0.,1.));
#25=IFCEXTRUDEDAREASOLID(#22,#23,#24,2.);
"""

TETRAHEDRON_BREP = """\
#30=IFCCARTESIANPOINT((0.,0.,0.));
#31=IFCCARTESIANPOINT((1.,0.,0.));
#32=IFCCARTESIANPOINT((0.,1.,0.));
#33=IFCCARTESIANPOINT((0.,0.,1.));
#40=IFCPOLYLOOP((#30,#32,#31));
#41=IFCPOLYLOOP((#30,#31,#33));
#42=IFCPOLYLOOP((#30,#33,#32));
#43=IFCPOLYLOOP((#31,#32,#33));
#44=IFCFACEOUTERBOUND(#40,.T.);
#45=IFCFACEOUTERBOUND(#41,.T.);
#46=IFCFACEOUTERBOUND(#42,.T.);
#47=IFCFACEOUTERBOUND(#43,.T.);
#50=IFCFACE((#44));
#51=IFCFACE((#45));
#52=IFCFACE((#46));
#53=IFCFACE((#47));
#60=IFCCLOSEDSHELL((#50,#51,#52,#53));
#61=IFCFACETEDBREP(#60);
"""

MAPPED_TRIANGLE = """\
#70=IFCCARTESIANPOINT((0.,0.,0.));
#71=IFCAXIS2PLACEMENT3D(#70,$,$);
#72=IFCCARTESIANPOINTLIST3D(((0.,0.,0.),(1.,0.,0.),(0.,1.,0.)));
#73=IFCTRIANGULATEDFACESET(#72,$,.T.,((1,2,3)),$);
#74=IFCSHAPEREPRESENTATION($,'Body','Tessellation',(#73));
#75=IFCREPRESENTATIONMAP(#71,#74);
#76=IFCCARTESIANPOINT((10.,0.,0.));
#77=IFCCARTESIANTRANSFORMATIONOPERATOR3D($,$,#76,2.,$);
#78=IFCMAPPEDITEM(#75,#77);
"""


def _product(item: str, name: str = "Element") -> str:
    return (
        f"#96=IFCSHAPEREPRESENTATION($,'Body','Tessellation',({item}));\n"
        "#97=IFCPRODUCTDEFINITIONSHAPE($,$,(#96));\n"
        f"#8=IFCBUILDINGELEMENTPROXY('4YvctVUKr0kugbFTf53O9L',$,'{name}',$,$,$,#97,$,$);\n"
    )


@pytest.fixture
def make_ifc():
    """Wrap DATA-section statements in a complete physical file."""
    return _make_ifc


@pytest.fixture
def minimal_project_ifc():
    return _make_ifc("#1=IFCPROJECT('g',$,'Demo',$,$,$,$,$);")


@pytest.fixture
def triangle_ifc():
    return _make_ifc(_SPATIAL + TRIANGLE + _product("#6", "Tri"))


@pytest.fixture
def extrusion_ifc():
    return _make_ifc(_SPATIAL + RECTANGLE_EXTRUSION + _product("#25", "Box"))


@pytest.fixture
def brep_ifc():
    return _make_ifc(_SPATIAL + TETRAHEDRON_BREP + _product("#61", "Tetra"))


@pytest.fixture
def mapped_ifc():
    return _make_ifc(_SPATIAL + MAPPED_TRIANGLE + _product("#78", "Mapped"))


@pytest.fixture
def boolean_ifc():
    data = (
        _SPATIAL
        + RECTANGLE_EXTRUSION
        + "#90=IFCPLANE(#23);\n"
        + "#91=IFCHALFSPACESOLID(#90,.F.);\n"
        + "#92=IFCBOOLEANCLIPPINGRESULT(.DIFFERENCE.,#25,#91);\n"
        + _product("#92", "Clipped")
    )
    return _make_ifc(data)


@pytest.fixture
def cyclic_ifc():
    return _make_ifc(
        """\
#1=IFCPROJECT('p',$,'Demo',$,$,$,$,$,$);
#2=IFCBUILDING('a',$,'A',$,$,$,$,$,$,$,$,$);
#3=IFCBUILDINGSTOREY('b',$,'B',$,$,$,$,$,$,$);
#4=IFCRELAGGREGATES('r1',$,$,$,#1,(#2));
#5=IFCRELAGGREGATES('r2',$,$,$,#2,(#3));
#6=IFCRELAGGREGATES('r3',$,$,$,#3,(#2));
"""
    )
