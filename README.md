# vrmkit

Read VRM 0.0 avatars (glTF or GLB files carrying the `VRM` extension) in
plain Python: parse the extension into typed records, load it into a small
property graph, build MToon material settings, and work out first-person
visibility and spring-bone motion.

## Modules

- `vrmkit.schema` — dataclass records for the VRM 0.0 extension JSON
  (`Vrm`, `Meta`, `Humanoid`, `FirstPerson`, `SecondaryAnimation`,
  `MaterialProperty`, …) and enums such as `BoneName`, `FirstPersonFlag`
  and `PresetName`. `parse_vrm` accepts a mapping, JSON text or bytes and
  returns a `Vrm`. Every record supports `from_json` / `to_json`; invalid
  values raise `ValueError`.
- `vrmkit.schema_vrm1` — records for the VRM 1.0 `VRMC_vrm` extension
  (`VrmcVrm`, `VrmcMeta`). The humanoid, first-person, look-at and
  expression sections are present but hold no fields.
- `vrmkit.graph` — `Graph`, a directed graph of nodes joined by named,
  ordered edges, and typed handles on it: `GltfDocument`, `GltfNode`,
  `Mesh`, `Primitive`, `Material`, `Texture`.
- `vrmkit.properties` — VRM property nodes stored in the graph: `Bone`,
  `BoneGroup`, `ColliderGroup`, `MaterialProperty`, `MeshAnnotation`,
  `BlendShapeGroup`, `Bind`, each with its weight record.
- `vrmkit.extension` — the `Vrm` extension node with its human bones, bone
  groups, material properties, mesh annotations, blend shape groups,
  first-person bone and thumbnail; plus `VrmcVrm` and `VrmcMaterialsMtoon`
  marker nodes.
- `vrmkit.importer` — `load_vrm(data)` reads the bytes of a `.vrm` file
  (GLB or JSON glTF) and returns a `LoadedVrm` holding the graph, the
  document, the `Vrm` node (or `None` when the file has no `VRM` extension),
  the glTF JSON and the selected scene index. Lower-level steps are
  `parse_gltf_json`, `build_document`, `import_vrm` and `select_scene`.
  References the document cannot satisfy raise a `VrmImportError`
  subclass: `MaterialNotFound`, `NodeNotFound`, `TextureNotFound`,
  `BoneNotFound` or `ColliderGroupNotFound`.
- `vrmkit.mtoon` — `MtoonMaterial` and `load_mtoon_material`, which fills
  one from a VRM material property; `mtoon_materials` builds every MToon
  material of a document, keyed by `mtoon_label`, and
  `primitive_material_label` tells which one a primitive should use.
  `MtoonMaterial.shader_uniform()` packs a material into an
  `MtoonShaderUniform` with its `MtoonMaterialFlags`; `outline_state`
  computes outline visibility and width for the screen and world modes.
- `vrmkit.first_person` — `render_layers(flag)` gives the render layers for
  a `FirstPersonFlag`; `head_weighted_vertices` finds vertices weighted to
  the head or a bone below it, and `clean_indices` drops the triangles that
  use them; `is_child` walks a parent mapping.
- `vrmkit.animations` — `TargetChain` and `vrm_animation_targets()`, which
  maps each humanoid `BoneName` to a stable UUID derived from its bone path.
- `vrmkit.spring_bones` — `Transform`, `SpringBone`,
  `SpringBoneLogicState`, `remap_spring_bones` and `step_spring_bone`,
  which advances one bone by a time step, updates its state and returns its
  new local rotation quaternion (x, y, z, w).
- `vrmkit.scene_setup` — `primitive_first_person_flag` resolves `AUTO`
  flags against the head bone; `build_spring_bones`,
  `expand_descendants` and `initial_logic_state` prepare spring bones from
  the VRM bone groups.

## Installing

```
pip install .
```

## Example

```python
from vrmkit.importer import load_vrm
from vrmkit.mtoon import mtoon_materials

with open("avatar.vrm", "rb") as fh:
    loaded = load_vrm(fh.read())

if loaded.vrm is not None:
    for bone in loaded.vrm.human_bones(loaded.graph):
        print(bone.read(loaded.graph).name)

    materials = mtoon_materials(loaded.graph, loaded.document, loaded.vrm)
    for label, material in materials.items():
        print(label, material.outline_mode, material.shader_uniform().flags)
```

## What it does not do

- It draws nothing: there is no renderer, shader program or viewer window.
  MToon materials, outline settings and render layers are plain values for
  a renderer to use.
- It reads only the glTF JSON. Buffers, accessors, vertex data, images and
  animations are not loaded; the first-person helpers take joint indices,
  weights and index lists that the caller supplies.
- It does not write or export VRM files.
- VRM 1.0 files are described by records in `vrmkit.schema_vrm1`, but
  `load_vrm` imports only the VRM 0.0 `VRM` extension.
- There is no command-line program.

## Tests

```
pip install .[test]
pytest
```